"""
Helper utilities for building machines.

Provides convenience functions and decorators that reduce boilerplate
when defining states, transitions, and effects.
"""

import logging
from functools import wraps
from typing import Any, Dict, Mapping

from fsmruntime.exceptions import ConfigurationError
from fsmruntime.types import ContextUpdater, MachineConfig, StateDefinition, StateName

logger = logging.getLogger(__name__)


def build_config(initial: StateName, states: Mapping[StateName, Any]) -> MachineConfig:
    """
    Build a MachineConfig from a compact configuration.

    Each state maps to a plain dict instead of a verbose StateDefinition()
    call. ``None`` stands for a final state with no events and no effect.

    Args:
        initial: Name of the starting state.
        states: Mapping of state name → config dict. Supported keys:
            - ``on`` (dict, optional): event → target name, or
              ``{"target": name, "guard": fn}``.
            - ``effect`` (callable, optional): Entry effect.

    Returns:
        A validated MachineConfig.

    Raises:
        ConfigurationError: If a state config is malformed, naming the state.

    Example:
        config = build_config("idle", {
            "idle": {"on": {"START": "running"}},
            "running": {"on": {"STOP": {"target": "idle", "guard": can_stop}}},
        })
    """
    definitions: Dict[StateName, StateDefinition] = {}
    for name, state in states.items():
        try:
            definitions[name] = StateDefinition.coerce(state)
        except ConfigurationError as e:
            raise ConfigurationError(f"State '{name}': {e}") from e
    return MachineConfig(initial=initial, states=definitions)


def log_effect(func):
    """
    Decorator that adds automatic entry/exit logging to state effects.

    Logs at DEBUG level when the effect runs and, if it returns an exit
    callback, when that callback runs.

    Usage:
        @log_effect
        def check_availability(update):
            start_request()
            return lambda update: cancel_request()
    """

    name = getattr(func, "__name__", repr(func))

    @wraps(func)
    def wrapper(update: ContextUpdater):
        logger.debug(f"{name}: Entering...")
        exit_effect = func(update)
        if not callable(exit_effect):
            return exit_effect

        @wraps(exit_effect)
        def exit_wrapper(update: ContextUpdater) -> None:
            logger.debug(f"{name}: Exiting...")
            exit_effect(update)

        return exit_wrapper

    return wrapper
