"""
Projection folding over the event log.

Same events always produce the same state.
"""

from .runner import ReplayResult, fold, replay, run

__all__ = [
    "ReplayResult",
    "fold",
    "replay",
    "run",
]
