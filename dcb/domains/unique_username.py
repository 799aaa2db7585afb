"""
Globally unique usernames.

A username stays claimed while an account holds it and for a retention
period after it was released (account closed or username changed away).
"""

from datetime import datetime, timedelta
from typing import List

from pydantic import BaseModel, ConfigDict

from ..api import Api, handles
from ..core.errors import ValidationError
from ..core.events import Event, EventType, EventTypeRegistry
from ..core.projection import Projection
from ..scenario import Scenario, ago

RETENTION_PERIOD = timedelta(days=3)

AccountRegistered = EventType("AccountRegistered", tags=lambda d: f"username:{d['username']}")
AccountClosed = EventType("AccountClosed", tags=lambda d: f"username:{d['username']}")
UsernameChanged = EventType(
    "UsernameChanged",
    tags=lambda d: [f"username:{d['old_username']}", f"username:{d['new_username']}"],
)

EVENT_TYPES = EventTypeRegistry([AccountRegistered, AccountClosed, UsernameChanged])


class RegisterAccount(BaseModel):
    model_config = ConfigDict(frozen=True)

    username: str


def is_username_claimed(username: str, now: datetime) -> Projection:
    """True while username is held, or was released less than RETENTION_PERIOD before now."""
    released_after = now - RETENTION_PERIOD

    def on_changed(state: bool, event: Event) -> bool:
        if event.data["new_username"] == username:
            return True
        return event.timestamp >= released_after

    return (
        Projection.for_tags(f"username:{username}")
        .init(False)
        .when(AccountRegistered, lambda state, event: True)
        .when(AccountClosed, lambda state, event: event.timestamp >= released_after)
        .when(UsernameChanged, on_changed)
    )


class UniqueUsername(Api):
    event_types = EVENT_TYPES

    @handles(RegisterAccount)
    def register_account(self, command: RegisterAccount) -> List[int]:
        model, query, append_condition = self.build_decision_model(
            is_username_claimed=is_username_claimed(command.username, self.now())
        )

        if model.is_username_claimed:
            raise ValidationError(f"Username {command.username} is claimed")

        return self.store.append(
            AccountRegistered(username=command.username), query, append_condition
        )


SCENARIOS = [
    Scenario("Register account with claimed username")
    .given(AccountRegistered(username="u1"))
    .when(RegisterAccount(username="u1"))
    .expect_error("Username u1 is claimed"),
    Scenario("Register account with unused username")
    .when(RegisterAccount(username="u1"))
    .expect_event(AccountRegistered(username="u1")),
    Scenario("Register account with username of a recently closed account")
    .given(
        AccountRegistered(username="u1").at(ago(days=4)),
        AccountClosed(username="u1").at(ago(days=2)),
    )
    .when(RegisterAccount(username="u1"))
    .expect_error("Username u1 is claimed"),
    Scenario("Register account with username of an account closed before the retention period")
    .given(
        AccountRegistered(username="u1").at(ago(days=5)),
        AccountClosed(username="u1").at(ago(days=4)),
    )
    .when(RegisterAccount(username="u1"))
    .expect_event(AccountRegistered(username="u1")),
    Scenario("Register account with a recently changed username")
    .given(
        AccountRegistered(username="u1").at(ago(days=4)),
        UsernameChanged(old_username="u1", new_username="u1changed").at(ago(days=2)),
    )
    .when(RegisterAccount(username="u1"))
    .expect_error("Username u1 is claimed"),
    Scenario("Register account with a username changed before the retention period")
    .given(
        AccountRegistered(username="u1").at(ago(days=5)),
        UsernameChanged(old_username="u1", new_username="u1changed").at(ago(days=4)),
    )
    .when(RegisterAccount(username="u1"))
    .expect_event(AccountRegistered(username="u1")),
    Scenario("Register account with a username another account changed to")
    .given(
        AccountRegistered(username="u1").at(ago(days=5)),
        UsernameChanged(old_username="u1", new_username="u1changed").at(ago(days=4)),
    )
    .when(RegisterAccount(username="u1changed"))
    .expect_error("Username u1changed is claimed"),
]
