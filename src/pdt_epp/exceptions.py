"""
EPP Session Exceptions

Exception hierarchy for the EPP session engine.

Protocol failures (transport, framing, unparseable responses) are raised.
Business failures (result codes 2000-2499) are not: they come back as a
ResultRecord for the caller to inspect.
"""


class EPPError(Exception):
    """Base EPP exception."""

    def __init__(self, message: str, code: int = None):
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self):
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


class EPPConnectionError(EPPError):
    """Connection to EPP server failed."""

    def __init__(self, message: str = "Connection failed"):
        super().__init__(message)


class EPPTimeoutError(EPPError, TimeoutError):
    """Connect, read or write exceeded the configured timeout."""

    def __init__(self, message: str = "Operation timed out"):
        super().__init__(message)


class EPPFrameError(EPPError):
    """EPP frame encoding/decoding error."""

    def __init__(self, message: str = "Frame error"):
        super().__init__(message)


class EPPXMLError(EPPError):
    """XML parsing error, or a response without a usable result code."""

    def __init__(self, message: str = "XML error"):
        super().__init__(message)


class EPPValidationError(EPPError, ValueError):
    """Caller-supplied parameters rejected before anything is sent."""

    def __init__(self, message: str = "Validation error"):
        super().__init__(message)


class EPPSessionError(EPPError):
    """Session-related error."""

    def __init__(self, message: str = "Session error"):
        super().__init__(message)


class EPPNotLoggedIn(EPPSessionError):
    """Not logged in (2002)."""

    def __init__(self):
        super().__init__("Command use error: not logged in")
        self.code = 2002


class EPPAlreadyLoggedIn(EPPSessionError):
    """Already logged in (2002)."""

    def __init__(self):
        super().__init__("Command use error: already logged in")
        self.code = 2002


class EPPSessionClosed(EPPSessionError):
    """Operation attempted on a closed session."""

    def __init__(self):
        super().__init__("Session is closed")
