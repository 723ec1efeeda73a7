"""
fsmruntime
~~~~~~~~~~

A small, embeddable finite state machine runtime for Python.

Quick start:
    from fsmruntime import create, Machine, MachineConfig
    from fsmruntime import StateDefinition, Transition, MachineState
"""

from fsmruntime.exceptions import ConfigurationError, MachineStoppedError
from fsmruntime.machine import Machine, create
from fsmruntime.types import (
    MachineConfig,
    MachineState,
    StateDefinition,
    Transition,
    TransitionRecord,
)
from fsmruntime.helpers import build_config, log_effect

__all__ = [
    "create",
    "Machine",
    "MachineConfig",
    "MachineState",
    "StateDefinition",
    "Transition",
    "TransitionRecord",
    "ConfigurationError",
    "MachineStoppedError",
    "build_config",
    "log_effect",
]
