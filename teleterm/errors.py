"""Exception hierarchy for teleterm.

Most protocol faults (foreign confirmations, foreign output, malformed frames)
are recovered locally and never raised. These classes cover the faults that do
cross an API boundary.
"""


class TeletermError(Exception):
    """Base exception for all teleterm errors.

    Attributes:
        message: Error message
        details: Additional error context
    """

    def __init__(self, message: str, details: dict[str, object] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TransportError(TeletermError):
    """The transport failed to connect, or the connection failed mid-stream."""


class SessionStateError(TeletermError):
    """An operation was invoked in a session state that does not allow it."""


class IdentityError(TeletermError):
    """A session identity field was assigned twice."""


class EmulatorBusyError(TeletermError):
    """The emulator adapter is already bound to another session client."""


class ConfigError(TeletermError):
    """Configuration file exists but does not validate."""
