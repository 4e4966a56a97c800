"""
PDT EPP

Blocking EPP session engine for registry conformance testing.
Supports RFC 5730 / 5732 / 5734 over plain TCP or TLS 1.2+.
"""

__version__ = "1.0.0"

from pdt_epp.session import EPPSession
from pdt_epp.connection import EPPConnection
from pdt_epp.models import (
    CommandKind,
    CommandSpec,
    ConnectionConfig,
    Credentials,
    Greeting,
    ResultBand,
    ResultRecord,
    SessionState,
)
from pdt_epp.exceptions import (
    EPPError,
    EPPConnectionError,
    EPPTimeoutError,
    EPPFrameError,
    EPPXMLError,
    EPPValidationError,
    EPPSessionError,
    EPPNotLoggedIn,
    EPPAlreadyLoggedIn,
    EPPSessionClosed,
)

__all__ = [
    # Session
    "EPPSession",
    "EPPConnection",
    # Models
    "CommandKind",
    "CommandSpec",
    "ConnectionConfig",
    "Credentials",
    "Greeting",
    "ResultBand",
    "ResultRecord",
    "SessionState",
    # Exceptions
    "EPPError",
    "EPPConnectionError",
    "EPPTimeoutError",
    "EPPFrameError",
    "EPPXMLError",
    "EPPValidationError",
    "EPPSessionError",
    "EPPNotLoggedIn",
    "EPPAlreadyLoggedIn",
    "EPPSessionClosed",
]
