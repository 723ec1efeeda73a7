"""
Machine — the runtime that owns a machine's canonical snapshot.

Features:
- Declarative configuration (``MachineConfig`` or the plain mapping form)
- Pure transition resolution with guards and silent no-ops
- Context updates routed through the same queue as events
- Entry effects with exit callbacks, bound to state value changes
- Queued, non-recursive handling of events sent from effects and listeners
- Snapshot listeners for host bindings
- Bounded transition history (deque) for debugging and introspection

Usage:
    from fsmruntime import create

    def on_active(update):
        update(lambda ctx: {**ctx, "count": ctx["count"] + 1})

    machine = create(
        {
            "initial": "inactive",
            "states": {
                "inactive": {"on": {"TOGGLE": "active"}},
                "active": {"on": {"TOGGLE": "inactive"}, "effect": on_active},
            },
        },
        context={"count": 0},
    )
    machine.dispatch("TOGGLE")
    machine.snapshot()  # MachineState(value='active', context={'count': 1}, ...)
"""

import logging
from collections import deque
from typing import Any, Callable, Deque, List, Mapping, Optional, Tuple, Union

from fsmruntime.effects import EffectScheduler
from fsmruntime.exceptions import MachineStoppedError
from fsmruntime.resolver import Message, context_update, is_context_update, resolve
from fsmruntime.types import (
    Context,
    EventName,
    MachineConfig,
    MachineState,
    StateName,
    TransitionRecord,
)

logger = logging.getLogger(__name__)

Listener = Callable[[MachineState], None]


class Machine:
    """
    A running finite state machine.

    Every event and context update is appended to a FIFO queue. The queue is
    drained by the outermost call only: each message is resolved, the new
    snapshot is committed and published to listeners, and the effects of a
    value change run before the next message is taken. Calls made from inside
    effects or listeners are therefore handled after the current message,
    never recursively.

    Attributes:
        HISTORY_SIZE: Number of transitions kept by ``get_history()``
                      (default: 100).
    """

    HISTORY_SIZE: int = 100

    def __init__(self, config: Union[MachineConfig, Mapping[str, Any]], context: Optional[Context] = None):
        if not isinstance(config, MachineConfig):
            config = MachineConfig.from_dict(config)

        self._config = config
        self._state = MachineState.initial(config, context)
        self._queue: Deque[Message] = deque()
        self._listeners: List[Listener] = []
        self._history: Deque[TransitionRecord] = deque(maxlen=self.HISTORY_SIZE)

        self._processing: bool = False
        self._stop_requested: bool = False
        self._stopped: bool = False

        self._effects = EffectScheduler(config, self.update)

        logger.info(
            f"{self.__class__.__name__} created — "
            f"{len(config.states)} states, starting at '{config.initial}'"
        )
        self._run(lambda: self._effects.start(self._state.value))

    # ------------------------------------------------------------------
    # Control messages
    # ------------------------------------------------------------------

    def dispatch(self, event: EventName) -> None:
        """
        Send ``event`` to the machine.

        Events not accepted by the current state, and transitions denied by
        their guard, leave the snapshot unchanged.

        Raises:
            TypeError: If ``event`` is an internal context-update message.
            MachineStoppedError: If the machine has been stopped.
            ConfigurationError: If the transition targets an unknown state.
        """
        if is_context_update(event):
            raise TypeError("Context updates must be sent through update()")
        if self._stop_requested:
            raise MachineStoppedError(f"Cannot dispatch '{event}': machine is stopped")
        self._queue.append(event)
        self._run()

    def update(self, updater: Callable[[Context], Context]) -> None:
        """
        Replace the context with ``updater(context)``.

        The update is queued like an event; ``value`` and ``next_events``
        are left untouched and no effect runs.

        Raises:
            MachineStoppedError: If the machine has been stopped.
        """
        if self._stopped:
            raise MachineStoppedError("Cannot update context: machine is stopped")
        self._queue.append(context_update(updater))
        self._run()

    def _run(self, start: Optional[Callable[[], None]] = None) -> None:
        if self._processing:
            return

        self._processing = True
        try:
            if start is not None:
                start()
            while self._queue and not self._stop_requested:
                self._step(self._queue.popleft())
            if self._stop_requested and not self._stopped:
                self._shutdown()
        except Exception:
            if self._queue:
                logger.warning(f"Discarding {len(self._queue)} queued message(s) after error")
                self._queue.clear()
            raise
        finally:
            self._processing = False

    def _step(self, message: Message) -> None:
        previous = self._state
        current = resolve(previous, message, self._config)
        if current is previous:
            return

        self._state = current
        if current.value != previous.value:
            logger.debug(f"Transition: '{previous.value}' → '{current.value}' on '{message}'")
            self._history.append(
                TransitionRecord(event=message, source=previous.value, target=current.value)
            )

        try:
            for listener in list(self._listeners):
                listener(current)
        finally:
            self._effects.commit(previous, current)

    def _shutdown(self) -> None:
        # Events are already refused; only updates issued by the exit callback remain.
        self._queue.clear()
        try:
            self._effects.stop()
            while self._queue:
                self._step(self._queue.popleft())
        finally:
            self._stopped = True
            logger.info(f"{self.__class__.__name__} stopped in '{self._state.value}'")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def stop(self) -> None:
        """
        Tear the machine down.

        Runs the active state's exit callback (context updates it makes are
        still applied) and refuses any further event or update. Messages
        still queued are discarded. Safe to call more than once.
        """
        if self._stopped:
            return
        self._stop_requested = True
        self._run()

    @property
    def stopped(self) -> bool:
        return self._stopped

    def __enter__(self) -> "Machine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register ``listener`` to receive every new snapshot.

        Listeners are not called for no-op events. Returns a callable that
        removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def config(self) -> MachineConfig:
        return self._config

    def snapshot(self) -> MachineState:
        """Return the current immutable snapshot."""
        return self._state

    @property
    def value(self) -> StateName:
        return self._state.value

    @property
    def context(self) -> Context:
        return self._state.context

    @property
    def next_events(self) -> Tuple[EventName, ...]:
        return self._state.next_events

    def can(self, event: EventName) -> bool:
        """True if the current state declares ``event``. Guards are not evaluated."""
        return event in self._state.next_events

    def get_history(self, last_n: Optional[int] = None) -> List[TransitionRecord]:
        """
        Return value-changing transitions, oldest first.

        Args:
            last_n: If provided, return only the last N entries.
        """
        history = list(self._history)
        return history[-last_n:] if last_n is not None else history

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} value={self._state.value!r}>"


def create(config: Union[MachineConfig, Mapping[str, Any]], context: Optional[Context] = None) -> Machine:
    """
    Build and start a machine.

    Runs the initial state's entry effect before returning.

    Args:
        config: A ``MachineConfig`` or the plain ``{initial, states}`` mapping.
        context: Initial context. Defaults to an empty dict.

    Raises:
        ConfigurationError: If the configuration is invalid.
    """
    return Machine(config, context)
