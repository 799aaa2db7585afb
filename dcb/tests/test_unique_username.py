"""
Username retention with a driven clock.
"""

from datetime import datetime, timedelta, timezone

import pytest

from dcb.core.clock import DeterministicClock
from dcb.core.errors import ValidationError
from dcb.domains.unique_username import (
    AccountClosed,
    RegisterAccount,
    UniqueUsername,
    UsernameChanged,
)
from dcb.log.memory_store import InMemoryEventStore


def _api():
    clock = DeterministicClock(datetime(2024, 6, 1, tzinfo=timezone.utc))
    store = InMemoryEventStore(clock=clock, registry=UniqueUsername.event_types)
    return UniqueUsername(store), clock


def test_closed_username_is_released_after_retention():
    api, clock = _api()
    api.call(RegisterAccount(username="u1"))
    api.store.append(AccountClosed(username="u1"))

    clock.advance(timedelta(days=2))
    with pytest.raises(ValidationError, match="Username u1 is claimed"):
        api.call(RegisterAccount(username="u1"))

    clock.advance(timedelta(days=1, seconds=1))
    api.call(RegisterAccount(username="u1"))
    assert api.store.head == 3


def test_changed_to_username_stays_claimed():
    api, clock = _api()
    api.call(RegisterAccount(username="u1"))
    api.store.append(UsernameChanged(old_username="u1", new_username="u2"))

    clock.advance(timedelta(days=30))

    with pytest.raises(ValidationError, match="Username u2 is claimed"):
        api.call(RegisterAccount(username="u2"))
    api.call(RegisterAccount(username="u1"))


def test_username_changed_event_carries_both_tags():
    event = UsernameChanged(old_username="a", new_username="b")

    assert event.tags == ("username:a", "username:b")
