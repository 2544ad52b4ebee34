"""Exceptions raised by the stint engine."""

from typing import List, Optional


class StintEngineError(Exception):
    """Base exception for all stint engine errors."""


class ConfigurationError(StintEngineError):
    """Raised when a race configuration fails validation.

    Carries the full list of field-level reasons so the caller can show
    every problem at once.
    """

    def __init__(self, reasons: List[str]):
        self.reasons = list(reasons)
        super().__init__("; ".join(self.reasons) or "Invalid race configuration")


class InvariantViolation(StintEngineError):
    """Raised when team state is inconsistent with an operation.

    Validation should have prevented it (e.g. a pit stop with no active stint).
    """

    def __init__(self, message: str, team_index: Optional[int] = None):
        self.team_index = team_index
        super().__init__(message)


class PersistenceError(StintEngineError):
    """Raised when saved race data cannot be decoded."""
