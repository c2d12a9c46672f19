"""
TLIAuth State Machine Base

Table-driven state machine for protocol sessions.

A subclass supplies its initial state, its initial context and a table
mapping (state, event type) to (next state, context updater). Every
accepted event is checked against the registered invariants before it is
committed, and recorded so a session can be audited afterwards.

Context updaters are pure: they return a new context and do no I/O.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Generic, List, Tuple, TypeVar

import attrs
import structlog
from returns.result import Failure, Result, Success

from tliauth.core.exceptions import InvariantViolation

logger = structlog.get_logger()


S = TypeVar("S", bound=Enum)  # State type
C = TypeVar("C")  # Context type

InvariantFn = Callable[[Any, Any], bool]

TransitionEntry = Tuple[Any, Callable[[Any, Any], Any]]


def _json_safe(inst: type, field: attrs.Attribute, value: Any) -> Any:  # noqa: ARG001
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}>"
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _public_fields(value: Any) -> Dict[str, Any]:
    """Snapshot an attrs instance, leaving out private and repr=False fields."""
    if not attrs.has(type(value)):
        return {}
    return attrs.asdict(
        value,
        recurse=False,
        filter=lambda attr, _: attr.repr and not attr.name.startswith("_"),
        value_serializer=_json_safe,
    )


@attrs.define(frozen=True, slots=True)
class Transition:
    """One committed step of a session."""

    source: Enum
    event_name: str
    target: Enum
    at: datetime
    context: Dict[str, Any] = attrs.Factory(dict)
    event: Dict[str, Any] = attrs.Factory(dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from_state": self.source.name,
            "event_type": self.event_name,
            "to_state": self.target.name,
            "timestamp": self.at.isoformat(),
            "context_snapshot": self.context,
            "event_data": self.event,
        }


@attrs.define
class StateMachineBase(ABC, Generic[S, C]):
    """
    Base class for session state machines.

    Usage:
        class DoorMachine(StateMachineBase[DoorState, DoorContext]):
            def initial_state(self) -> DoorState:
                return DoorState.CLOSED

            def initial_context(self) -> DoorContext:
                return DoorContext()

            def transition_table(self):
                return {
                    (DoorState.CLOSED, Opened): (DoorState.OPEN, self._on_open),
                }
    """

    _state: S = attrs.field(init=False)
    _context: C = attrs.field(init=False)
    _table: Dict[Tuple[Any, type], TransitionEntry] = attrs.field(init=False)
    _history: List[Transition] = attrs.field(init=False, factory=list)
    _invariants: Dict[str, InvariantFn] = attrs.field(init=False, factory=dict)
    _logger: Any = attrs.field(init=False, factory=lambda: structlog.get_logger())

    def __attrs_post_init__(self) -> None:
        self._state = self.initial_state()
        self._context = self.initial_context()
        self._table = self.transition_table()

    @abstractmethod
    def initial_state(self) -> S:
        ...

    @abstractmethod
    def initial_context(self) -> C:
        ...

    @abstractmethod
    def transition_table(self) -> Dict[Tuple[S, type], TransitionEntry]:
        """Map (state, event type) to (next state, context updater)."""
        ...

    @property
    def state(self) -> S:
        return self._state

    @property
    def context(self) -> C:
        return self._context

    def add_invariant(self, name: str, invariant: InvariantFn) -> None:
        """Register ``invariant(state, context) -> bool``, checked on every step."""
        self._invariants[name] = invariant

    def process_event(self, event: Any) -> Result[S, str]:
        """
        Apply an event.

        Returns:
            Success(next_state), or Failure(reason) when the event is not
            valid in the current state or its context update fails

        Raises:
            InvariantViolation: The step would break a registered invariant;
                nothing is committed
        """
        event_name = type(event).__name__
        entry = self._table.get((self._state, type(event)))
        if entry is None:
            self._logger.warning(
                "transition_rejected",
                state=self._state.name,
                event_type=event_name,
            )
            return Failure(f"{event_name} is not valid in state {self._state.name}")

        target, update = entry
        try:
            context = update(event, self._context)
        except (TypeError, ValueError) as e:
            self._logger.error("context_update_failed", event_type=event_name, error=str(e))
            return Failure(f"Context update for {event_name} failed: {e}")

        for name, invariant in self._invariants.items():
            if not invariant(target, context):
                self._logger.error(
                    "invariant_violated",
                    invariant=name,
                    state=self._state.name,
                    target=target.name,
                )
                raise InvariantViolation(f"Invariant '{name}' violated entering {target.name}")

        self._history.append(
            Transition(
                source=self._state,
                event_name=event_name,
                target=target,
                at=datetime.now(timezone.utc),
                context=_public_fields(context),
                event=_public_fields(event),
            )
        )
        self._logger.debug(
            "state_transition",
            state=self._state.name,
            target=target.name,
            event_type=event_name,
        )
        self._state, self._context = target, context
        return Success(target)

    def get_trace(self) -> List[Transition]:
        return list(self._history)

    def export_trace_json(self) -> str:
        """Serialize the committed steps as JSON."""
        return json.dumps(
            {
                "initial_state": self.initial_state().name,
                "final_state": self._state.name,
                "transitions": [t.to_dict() for t in self._history],
            },
            indent=2,
        )
