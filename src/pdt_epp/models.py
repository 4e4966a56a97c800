"""
EPP Session Models

Data classes for configuration, commands and results.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pdt_epp.exceptions import EPPValidationError


# =============================================================================
# Configuration
# =============================================================================

@dataclass(frozen=True)
class ConnectionConfig:
    """Where and how to reach the EPP server.

    sni_name is only used when use_tls is set; it replaces host as the
    server name presented in the TLS handshake. timeout (seconds) bounds
    connect, read and write.
    """
    host: str
    port: int = 700
    use_tls: bool = True
    sni_name: Optional[str] = None
    timeout: float = 30
    verify_server: bool = True
    ca_file: Optional[str] = None

    def __post_init__(self):
        if not self.host:
            raise EPPValidationError("Server host is required")
        if isinstance(self.port, bool) or not isinstance(self.port, int):
            raise EPPValidationError(f"Port must be an integer: {self.port!r}")
        if not 1 <= self.port <= 65535:
            raise EPPValidationError(f"Port out of range: {self.port}")
        if self.timeout is None or self.timeout <= 0:
            raise EPPValidationError(f"Timeout must be positive: {self.timeout!r}")

    @property
    def server_name(self) -> str:
        """Name presented to the server during the TLS handshake."""
        return self.sni_name or self.host


@dataclass(frozen=True)
class Credentials:
    """Login identity and client certificate."""
    client_id: str
    password: str = field(repr=False)
    cert_file: Optional[str] = None
    cert_password: Optional[str] = field(default=None, repr=False)


# =============================================================================
# Session
# =============================================================================

class SessionState(Enum):
    """Lifecycle of an EPP session."""
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    LOGGED_IN = "logged_in"
    CLOSED = "closed"


@dataclass
class Greeting:
    """EPP server greeting."""
    server_id: str
    server_date: Optional[datetime] = None
    version: List[str] = field(default_factory=list)
    lang: List[str] = field(default_factory=list)
    obj_uris: List[str] = field(default_factory=list)
    ext_uris: List[str] = field(default_factory=list)

    def supports(self, uri: str) -> bool:
        """Check whether the server announces an object or extension URI."""
        return uri in self.obj_uris or uri in self.ext_uris


# =============================================================================
# Results
# =============================================================================

class ResultBand(Enum):
    """Classification of an EPP result code."""
    OK = "ok"
    ENDING_SESSION = "ending_session"
    FAILED = "failed"


def classify_code(code: int) -> Optional[ResultBand]:
    """
    Map a numeric result code to its band.

    Returns None for codes outside the bands this engine accepts.
    """
    if code in (1000, 1001):
        return ResultBand.OK
    if code == 1500:
        return ResultBand.ENDING_SESSION
    if 2000 <= code <= 2499:
        return ResultBand.FAILED
    return None


@dataclass
class ResultRecord:
    """Outcome of one EPP exchange.

    code is the 4-digit result code as sent by the server. reason carries
    the extended error text (extValue/reason) when the server supplies one.
    """
    code: str
    message: str
    reason: Optional[str] = None
    cl_trid: Optional[str] = None
    sv_trid: Optional[str] = None
    raw_xml: Optional[str] = None

    @property
    def band(self) -> ResultBand:
        return classify_code(int(self.code))

    @property
    def success(self) -> bool:
        """Check if the command completed (1000 or 1001)."""
        return self.band is ResultBand.OK

    @property
    def failed(self) -> bool:
        return self.band is ResultBand.FAILED

    @property
    def session_ended(self) -> bool:
        """Check if the server ended the session (1500)."""
        return self.band is ResultBand.ENDING_SESSION

    def describe(self) -> str:
        """One-line summary: code, message and reason if any."""
        text = f"{self.code} - {self.message}"
        if self.reason:
            text += f" ({self.reason})"
        return text


# =============================================================================
# Commands
# =============================================================================

class CommandKind(Enum):
    """EPP commands the engine can build."""
    HELLO = "hello"
    LOGIN = "login"
    LOGOUT = "logout"
    HOST_DELETE = "host_delete"


@dataclass(frozen=True)
class CommandSpec:
    """A command kind plus its parameters.

    Use the constructors below rather than filling params by hand.
    """
    kind: CommandKind
    params: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def hello(cls) -> "CommandSpec":
        return cls(CommandKind.HELLO)

    @classmethod
    def login(
        cls,
        client_id: str,
        password: str,
        obj_uris: List[str] = None,
        ext_uris: List[str] = None,
        version: str = "1.0",
        lang: str = "en",
    ) -> "CommandSpec":
        return cls(
            CommandKind.LOGIN,
            {
                "client_id": client_id,
                "password": password,
                "obj_uris": list(obj_uris) if obj_uris else None,
                "ext_uris": list(ext_uris) if ext_uris else None,
                "version": version,
                "lang": lang,
            },
        )

    @classmethod
    def logout(cls) -> "CommandSpec":
        return cls(CommandKind.LOGOUT)

    @classmethod
    def host_delete(cls, name: str) -> "CommandSpec":
        return cls(CommandKind.HOST_DELETE, {"name": name})

    def __repr__(self):
        # Keep passwords out of logs and tracebacks
        shown = {k: ("***" if k == "password" else v) for k, v in self.params.items()}
        return f"CommandSpec(kind={self.kind.name}, params={shown})"
