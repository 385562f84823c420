"""
Exceptions raised by the simulation engine.

Only ConfigurationError is expected by end users. Everything else signals
a defect in the algorithm or its implementation and is meant to fail tests.
"""


class SimulationError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(SimulationError, ValueError):
    """Run parameters outside the supported bounds. Raised before any task starts."""


class InvariantViolation(SimulationError, AssertionError):
    """
    A correctness property was observed to fail.

    Examples: two processes inside the CS at once, a REPLY with no
    outstanding request, a clock that did not strictly increase.
    """


class ReplayError(SimulationError):
    """An event log could not be replayed, or replay diverged from it."""
