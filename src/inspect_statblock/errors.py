"""Exception types for inspect-statblock.

// [LAW:one-source-of-truth] Every error this package raises derives from InspectStatblockError.

This module is STABLE: never hot-reloaded. Safe for `from` imports everywhere.
"""


class InspectStatblockError(Exception):
    """Base class for all inspect-statblock errors."""


class HandlerRegistrationError(InspectStatblockError, ValueError):
    """A system handler could not be registered."""


class FlagStorageError(InspectStatblockError):
    """Persisted flag state could not be written for an owner entity."""
