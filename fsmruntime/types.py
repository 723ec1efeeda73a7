"""
Machine configuration and snapshot types.

Defines the core types used by the runtime:
- Transition: A named edge to a target state, optionally guarded
- StateDefinition: The events a state accepts and its entry effect
- MachineConfig: Initial state plus every state definition
- MachineState: Immutable snapshot of value, context and next events
- TransitionRecord: Tracks value-changing transitions for introspection
"""

import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from fsmruntime.exceptions import ConfigurationError

StateName = str
EventName = str

Context = Any
ContextUpdater = Callable[[Callable[[Context], Context]], None]
Guard = Callable[[StateName, EventName], bool]
ExitEffect = Callable[[ContextUpdater], None]
EntryEffect = Callable[[ContextUpdater], Optional[ExitEffect]]


@dataclass(frozen=True)
class Transition:
    """
    A transition to ``target``, optionally gated by ``guard``.

    Args:
        target: Name of the state the transition leads to.
        guard: Optional callable taking ``(current_value, event)``. The
               transition only fires when it returns a truthy value.
               Exceptions raised by the guard propagate to the caller.
    """

    target: StateName
    guard: Optional[Guard] = None

    def __post_init__(self):
        if not isinstance(self.target, str):
            raise ConfigurationError(f"Transition target must be a state name, got {self.target!r}")
        if self.guard is not None and not callable(self.guard):
            raise ConfigurationError(f"Guard for target '{self.target}' is not callable")

    @classmethod
    def coerce(cls, value: Union[StateName, "Transition", Mapping[str, Any]]) -> "Transition":
        """
        Normalise the shorthand forms accepted in configurations.

        A bare state name becomes an unguarded transition; a mapping must
        carry a ``target`` key and may carry a ``guard``.

        Raises:
            ConfigurationError: If the value has none of the accepted shapes.
        """
        if isinstance(value, Transition):
            return value
        if isinstance(value, str):
            return cls(target=value)
        if isinstance(value, Mapping):
            if "target" not in value:
                raise ConfigurationError(f"Transition {dict(value)!r} missing required 'target'")
            return cls(target=value["target"], guard=value.get("guard"))
        raise ConfigurationError(f"Unsupported transition definition: {value!r}")

    def allows(self, value: StateName, event: EventName) -> bool:
        """True if no guard is set, or the guard accepts ``(value, event)``."""
        if self.guard is None:
            return True
        return bool(self.guard(value, event))


@dataclass
class StateDefinition:
    """
    Events accepted by a state and the effect run on entering it.

    Args:
        on: Mapping of event name to transition (or a shorthand accepted
            by ``Transition.coerce``).
        effect: Optional entry effect. Called with the context updater; may
                return an exit callback that is called, with the same
                updater, when the state is left.
    """

    on: Dict[EventName, Transition] = field(default_factory=dict)
    effect: Optional[EntryEffect] = None

    def __post_init__(self):
        self.on = {event: Transition.coerce(t) for event, t in (self.on or {}).items()}
        if self.effect is not None and not callable(self.effect):
            raise ConfigurationError("State effect is not callable")

    @classmethod
    def coerce(cls, value: Union["StateDefinition", Mapping[str, Any], None]) -> "StateDefinition":
        if isinstance(value, StateDefinition):
            return value
        if value is None:
            return cls()
        if isinstance(value, Mapping):
            unknown = set(value) - {"on", "effect"}
            if unknown:
                raise ConfigurationError(f"Unknown state keys: {sorted(unknown)}")
            return cls(on=value.get("on") or {}, effect=value.get("effect"))
        raise ConfigurationError(f"Unsupported state definition: {value!r}")

    @property
    def events(self) -> Tuple[EventName, ...]:
        return tuple(self.on)


@dataclass
class MachineConfig:
    """
    Declarative machine configuration.

    Args:
        initial: Name of the state the machine starts in.
        states: Mapping of state name to its definition.

    Raises:
        ConfigurationError: If ``initial`` or any transition target is
                            not a key of ``states``.
    """

    initial: StateName
    states: Dict[StateName, StateDefinition] = field(default_factory=dict)

    def __post_init__(self):
        self.states = {name: StateDefinition.coerce(d) for name, d in self.states.items()}
        self._validate()

    @classmethod
    def from_dict(cls, config: Mapping[str, Any]) -> "MachineConfig":
        """Build a configuration from the plain ``{initial, states}`` mapping."""
        if "initial" not in config:
            raise ConfigurationError("Configuration missing required 'initial'")
        return cls(initial=config["initial"], states=dict(config.get("states") or {}))

    def _validate(self) -> None:
        if self.initial not in self.states:
            raise ConfigurationError(f"Initial state '{self.initial}' not found in states")

        for name, definition in self.states.items():
            for event, transition in definition.on.items():
                if transition.target not in self.states:
                    raise ConfigurationError(
                        f"Transition '{event}' from '{name}' targets unknown state "
                        f"'{transition.target}'"
                    )

    def next_events(self, value: StateName) -> Tuple[EventName, ...]:
        """Return the events accepted by ``value``, in declaration order."""
        definition = self.states.get(value)
        return definition.events if definition is not None else ()


@dataclass(frozen=True)
class MachineState:
    """
    Immutable snapshot of a running machine.

    ``next_events`` is always the key set of ``states[value].on`` for the
    configuration the snapshot was produced from.
    """

    value: StateName
    context: Context
    next_events: Tuple[EventName, ...] = ()

    @classmethod
    def initial(cls, config: MachineConfig, context: Optional[Context] = None) -> "MachineState":
        return cls(
            value=config.initial,
            context={} if context is None else context,
            next_events=config.next_events(config.initial),
        )

    def with_value(self, value: StateName, next_events: Tuple[EventName, ...]) -> "MachineState":
        return replace(self, value=value, next_events=tuple(next_events))

    def with_context(self, context: Context) -> "MachineState":
        return replace(self, context=context)

    def to_dict(self) -> dict:
        """Serialise to a plain dictionary."""
        return {
            "value": self.value,
            "context": self.context,
            "next_events": list(self.next_events),
        }


@dataclass
class TransitionRecord:
    """Records a single value-changing transition."""

    event: EventName
    source: StateName
    target: StateName
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "event": self.event,
            "source": self.source,
            "target": self.target,
            "timestamp": self.timestamp,
        }
