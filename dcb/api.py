"""
Command handler base.

Each domain subclasses Api and marks one method per command type with
@handles(CommandType). The mapping is built once per class, so dispatch is a
dictionary lookup on the command's type and the set of commands a domain
accepts is closed and visible (Api.commands()).
"""

from datetime import datetime
from typing import Any, Callable, ClassVar, Dict, Optional, Tuple, Type

from . import metrics
from .config import StoreConfig, open_store
from .core.errors import ConcurrencyConflict, UnknownCommandError
from .core.events import EventTypeRegistry
from .core.projection import Projection
from .decision import Decision, build_decision_model
from .log.store import EventStore
from .logging_config import get_logger

Handler = Callable[[Any, Any], Any]

DEFAULT_MAX_ATTEMPTS = 3


def handles(command_type: type) -> Callable[[Handler], Handler]:
    """
    Mark an Api method as the handler of command_type.

    Usage:
        class Courses(Api):
            @handles(DefineCourse)
            def define_course(self, command: DefineCourse) -> List[int]:
                ...
    """

    def decorator(fn: Handler) -> Handler:
        fn._handles = command_type  # type: ignore[attr-defined]
        return fn

    return decorator


class Api:
    """
    Base class for DCB command handlers.

    Handlers build a decision model, validate business rules against it
    (raising ValidationError) and append through the decision's boundary.
    """

    _handlers: ClassVar[Dict[type, Handler]] = {}
    # Event types this Api appends; stores may validate tags against it.
    event_types: ClassVar[Optional[EventTypeRegistry]] = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        handlers: Dict[type, Handler] = dict(getattr(cls, "_handlers", {}))
        own: Dict[type, str] = {}
        for name, attr in vars(cls).items():
            command_type = getattr(attr, "_handles", None)
            if command_type is None:
                continue
            if command_type in own:
                raise TypeError(
                    f"{cls.__name__}: {command_type.__name__} handled by both "
                    f"{own[command_type]} and {name}"
                )
            own[command_type] = name
            handlers[command_type] = attr
        cls._handlers = handlers

    def __init__(
        self,
        store: EventStore,
        clock=None,
        max_attempts: Optional[int] = None,
    ) -> None:
        """
        Args:
            store: Event store handle (owned by the caller)
            clock: Source of "now" for time-dependent rules (default: store.clock)
            max_attempts: Attempts per command in call_with_retry()
        """
        self.store = store
        self.clock = clock or store.clock
        self.max_attempts = max_attempts or DEFAULT_MAX_ATTEMPTS

    @classmethod
    def from_config(cls, config: Optional[StoreConfig] = None, clock=None) -> "Api":
        """
        Open the configured store (validated against cls.event_types) and
        bind a handler to it. The caller closes api.store.
        """
        config = config or StoreConfig.from_env()
        store = open_store(config, clock=clock, registry=cls.event_types)
        return cls(store, max_attempts=config.max_attempts)

    @classmethod
    def commands(cls) -> Tuple[Type, ...]:
        return tuple(cls._handlers)

    def now(self) -> datetime:
        return self.clock.now()

    def build_decision_model(self, **projections: Projection) -> Decision:
        return build_decision_model(self.store, projections)

    def call(self, command: Any) -> Any:
        """
        Dispatch command to its handler.

        Raises:
            UnknownCommandError: If this Api has no handler for type(command)
        """
        handler = self._handlers.get(type(command))
        if handler is None:
            raise UnknownCommandError(
                f"{type(self).__name__} has no handler for {type(command).__name__}"
            )
        return handler(self, command)

    def call_with_retry(self, command: Any, max_attempts: Optional[int] = None) -> Any:
        """
        Run command, rebuilding the decision from scratch on ConcurrencyConflict.

        Business rule violations (ValidationError) are never retried. After
        the last attempt the conflict propagates to the caller.
        """
        attempts = max_attempts or self.max_attempts
        name = type(command).__name__
        logger = get_logger(__name__, trace_id=name)

        for attempt in range(1, attempts + 1):
            try:
                return self.call(command)
            except ConcurrencyConflict as ex:
                if attempt >= attempts:
                    logger.error(f"Giving up after {attempt} attempts: {ex}")
                    raise
                metrics.track_retry(name)
                logger.warning(f"Concurrency conflict on attempt {attempt}/{attempts}, retrying")
