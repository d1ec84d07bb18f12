"""
Service-level exceptions.

This module contains exceptions that can be raised by the repositories and
services in the application. Stage detection itself never raises them.
"""

class TrackerError(Exception):
    """Base exception for cycle and milestone persistence errors."""
    pass

class CycleNotFoundError(TrackerError):
    """Raised when a requested cycle does not exist."""
    pass

class ActiveCycleConflictError(TrackerError):
    """Raised when saving a cycle would leave a user with two active cycles."""
    pass

class ReferenceDataError(Exception):
    """Raised when stage reference data cannot be loaded."""
    pass
