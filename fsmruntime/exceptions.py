"""Exceptions raised by the fsmruntime engine."""


class ConfigurationError(ValueError):
    """
    Raised when a machine configuration is invalid.

    Covers an ``initial`` state missing from ``states``, transitions that
    target unknown states, and non-callable guards or effects.
    """


class MachineStoppedError(RuntimeError):
    """Raised when a stopped machine receives an event or context update."""
