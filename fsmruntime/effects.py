"""
Entry/exit effect scheduling.

Effects are bound to the state *value*: the entry effect of a state runs
when the machine enters it, and the exit callback it returned runs exactly
once, before the entry effect of the next state. Context-only updates and
no-op events never run effects.
"""

import logging
from typing import Optional

from fsmruntime.types import ContextUpdater, ExitEffect, MachineConfig, MachineState, StateName

logger = logging.getLogger(__name__)


class EffectScheduler:
    """
    Runs entry effects and their exit callbacks for one machine.

    Args:
        config: The machine configuration holding the effects.
        update: Context updater handed to every entry and exit callback.
    """

    def __init__(self, config: MachineConfig, update: ContextUpdater):
        self._config = config
        self._update = update
        self._pending_exit: Optional[ExitEffect] = None
        self._active: Optional[StateName] = None

    @property
    def pending_exit(self) -> Optional[ExitEffect]:
        """Exit callback returned by the active state's entry effect, if any."""
        return self._pending_exit

    def start(self, value: StateName) -> None:
        """Run the entry effect of the initial state."""
        self._enter(value)

    def commit(self, previous: MachineState, current: MachineState) -> None:
        """
        React to a snapshot replacement.

        Does nothing when ``value`` is unchanged; otherwise runs the pending
        exit callback, then the entry effect of the new state.
        """
        if previous.value == current.value:
            return
        self._exit()
        self._enter(current.value)

    def stop(self) -> None:
        """Run and discard the pending exit callback."""
        self._exit()
        self._active = None

    def _enter(self, value: StateName) -> None:
        self._active = value
        definition = self._config.states.get(value)
        if definition is None or definition.effect is None:
            return

        logger.debug(f"Entering '{value}' — running entry effect")
        result = definition.effect(self._update)
        self._pending_exit = result if callable(result) else None

    def _exit(self) -> None:
        exit_effect, self._pending_exit = self._pending_exit, None
        if exit_effect is None:
            return

        logger.debug(f"Leaving '{self._active}' — running exit effect")
        exit_effect(self._update)
