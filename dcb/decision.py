"""
Decision model builder.

Folds N named projections against one snapshot of the log, unions their
queries into the consistency boundary and captures the append condition:
the id of the last event matching that boundary.
"""

import logging
from typing import Any, Dict, Iterator, List, Mapping, NamedTuple, Optional

from . import metrics
from .core.projection import Projection
from .core.query import Query
from .log.store import Batch, EventStore
from .replay.runner import run

logger = logging.getLogger(__name__)


class DecisionModel(Mapping[str, Any]):
    """
    Read-only mapping of projection key -> folded state.

    Supports attribute access for keys that are identifiers:
        model["course_capacity"] == model.course_capacity
    """

    def __init__(self, results: Mapping[str, Any]) -> None:
        self._results: Dict[str, Any] = dict(results)

    def __getitem__(self, key: str) -> Any:
        return self._results[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._results)

    def __len__(self) -> int:
        return len(self._results)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._results[name]
        except KeyError:
            raise AttributeError(f"Decision model has no projection {name!r}") from None

    def __repr__(self) -> str:
        return f"DecisionModel({self._results!r})"


class Decision(NamedTuple):
    """
    Result of build_decision_model(); unpacks as (model, query, append_condition).
    """
    model: DecisionModel
    query: Query
    append_condition: Optional[int]

    def append(self, store: EventStore, events: Batch) -> List[int]:
        """Append guarded by this decision's boundary and condition."""
        return store.append(events, self.query, self.append_condition)


def build_decision_model(store: EventStore, projections: Mapping[str, Projection]) -> Decision:
    """
    Build a decision model from named projections.

    Every fold and the append condition are bounded by the same head, so an
    append landing mid-build cannot slip between what was folded and what the
    condition covers.

    Args:
        store: Event store to read from
        projections: key -> Projection

    Returns:
        Decision(model, query, append_condition)

    Raises:
        ValueError: If projections is empty
    """
    if not projections:
        raise ValueError("build_decision_model() needs at least one projection")

    with metrics.track_decision_build():
        head = store.head or 0
        model = {key: run(projection, store, until=head) for key, projection in projections.items()}
        query = Query.union(*(projection.query for projection in projections.values()))
        condition = store.last_id_for(query, until=head)

    logger.debug(f"Built decision model {sorted(model)} over {query} at condition={condition}")
    return Decision(model=DecisionModel(model), query=query, append_condition=condition)
