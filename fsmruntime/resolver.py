"""
Transition resolution.

``resolve`` is a pure function from (snapshot, message, configuration) to the
next snapshot. Messages are either event names or context-update messages.
Context-update messages can only be built inside this package, so host code
cannot disguise one as an event.
"""

import logging
from typing import Callable, Union

from fsmruntime.exceptions import ConfigurationError
from fsmruntime.types import Context, EventName, MachineConfig, MachineState

logger = logging.getLogger(__name__)

_CONTEXT_UPDATE = object()


class _ContextUpdate:
    """Internal control message replacing the context via ``updater``."""

    __slots__ = ("kind", "updater")

    def __init__(self, token: object, updater: Callable[[Context], Context]):
        if token is not _CONTEXT_UPDATE:
            raise TypeError("Context update messages cannot be constructed outside fsmruntime")
        if not callable(updater):
            raise TypeError(f"Context updater must be callable, got {updater!r}")
        self.kind = token
        self.updater = updater

    def __repr__(self) -> str:
        return f"<context update {self.updater!r}>"


Message = Union[EventName, _ContextUpdate]


def context_update(updater: Callable[[Context], Context]) -> _ContextUpdate:
    """Build the internal message that applies ``updater`` to the context."""
    return _ContextUpdate(_CONTEXT_UPDATE, updater)


def is_context_update(message: object) -> bool:
    return isinstance(message, _ContextUpdate) and message.kind is _CONTEXT_UPDATE


def resolve(state: MachineState, message: Message, config: MachineConfig) -> MachineState:
    """
    Compute the snapshot that follows ``state`` after ``message``.

    Unrecognised events and denied guards return ``state`` itself, so callers
    can detect a no-op by identity.

    Raises:
        ConfigurationError: If the transition targets a state that is not
                            defined in ``config``.
    """
    if is_context_update(message):
        return state.with_context(message.updater(state.context))

    current = config.states.get(state.value)
    transition = current.on.get(message) if current is not None else None
    if transition is None:
        logger.debug(f"'{message}' not accepted in '{state.value}' — ignored")
        return state

    if not transition.allows(state.value, message):
        logger.debug(f"Guard denied '{message}' from '{state.value}' to '{transition.target}'")
        return state

    if transition.target not in config.states:
        raise ConfigurationError(
            f"Transition '{message}' from '{state.value}' targets unknown state "
            f"'{transition.target}'"
        )

    return state.with_value(transition.target, config.next_events(transition.target))
