"""
EPP Session

Drives one EPP session: connect and greeting, login, commands, logout.
"""

import logging
from typing import Optional

from pdt_epp.connection import EPPConnection
from pdt_epp.exceptions import (
    EPPAlreadyLoggedIn,
    EPPConnectionError,
    EPPError,
    EPPFrameError,
    EPPNotLoggedIn,
    EPPSessionClosed,
    EPPSessionError,
    EPPTimeoutError,
    EPPValidationError,
)
from pdt_epp.models import (
    CommandKind,
    CommandSpec,
    ConnectionConfig,
    Credentials,
    Greeting,
    ResultRecord,
    SessionState,
)
from pdt_epp.xml_builder import XMLBuilder
from pdt_epp.xml_parser import XMLParser

logger = logging.getLogger("epp.session")


class EPPSession:
    """
    A single EPP session, strictly one request and one response at a time.

    States: DISCONNECTED -> CONNECTED (open) -> LOGGED_IN (login) -> CLOSED
    (close). A failed login leaves the session CONNECTED. CLOSED is terminal.

    Business failures (2xxx) are returned as ResultRecords and never raised;
    transport, frame and parse problems are raised and leave the state as
    it was. After such a failure the connection is considered out of sync
    and the only useful call is close().

    Example:
        config = ConnectionConfig(host="epp.example.net", port=700, use_tls=True)
        credentials = Credentials(client_id="registrar1", password="secret")

        with EPPSession(config, credentials) as session:
            session.login()
            result = session.host_delete("ns1.example.net")
            print(result.code, result.message)
        print(session.last_result.code)   # logout result, normally 1500

    Sessions are not thread safe; run one per thread.
    """

    def __init__(
        self,
        config: ConnectionConfig,
        credentials: Credentials = None,
        cl_trid_prefix: str = "PDT",
        connection: EPPConnection = None,
    ):
        """
        Initialize EPP session.

        Args:
            config: Server connection settings
            credentials: Login identity and client certificate
            cl_trid_prefix: Prefix for generated client transaction IDs
            connection: Pre-built connection (defaults to one built from config)
        """
        self.config = config
        self._credentials = credentials
        self._connection = connection or EPPConnection(config, credentials)

        self._state = SessionState.DISCONNECTED
        self._greeting: Optional[Greeting] = None
        self._last_result: Optional[ResultRecord] = None
        self._transport_failed = False
        self._cl_trid_prefix = cl_trid_prefix
        self._cl_trid_counter = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_logged_in(self) -> bool:
        """Check if logged in."""
        return self._state is SessionState.LOGGED_IN

    @property
    def greeting(self) -> Optional[Greeting]:
        """Get server greeting received on open."""
        return self._greeting

    @property
    def last_result(self) -> Optional[ResultRecord]:
        """Result of the most recent login, command or logout exchange."""
        return self._last_result

    def _generate_cl_trid(self) -> str:
        """Generate unique client transaction ID."""
        self._cl_trid_counter += 1
        return f"{self._cl_trid_prefix}-{self._cl_trid_counter:06d}"

    def _ensure_open(self) -> None:
        if self._state is SessionState.CLOSED:
            raise EPPSessionClosed()

    def _exchange(self, xml: bytes, allow_session_end: bool = False) -> ResultRecord:
        """
        Send a command, read and interpret the response.

        Replaces last_result on success. A transport or frame failure marks
        the connection unusable.
        """
        if self._transport_failed:
            raise EPPConnectionError("Connection is unusable after an earlier failure; close the session")

        self._last_result = None
        try:
            response_xml = self._connection.send_and_receive(xml)
        except (EPPTimeoutError, EPPFrameError, EPPConnectionError):
            self._transport_failed = True
            raise

        logger.debug(f"Response: {response_xml!r}")
        self._last_result = XMLParser.parse_response(response_xml, allow_session_end)
        return self._last_result

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def open(self) -> Greeting:
        """
        Connect to the server and read its greeting.

        Returns:
            Server greeting

        Raises:
            EPPSessionClosed: If the session was closed
            EPPSessionError: If already open
            EPPTimeoutError: If connect or the greeting read times out
            EPPConnectionError: If the connection fails
            EPPFrameError: If the greeting frame is invalid
            EPPXMLError: If the greeting is not a well-formed greeting
        """
        self._ensure_open()
        if self._state is not SessionState.DISCONNECTED:
            raise EPPSessionError("Session already open")

        self._last_result = None
        self._connection.connect()
        try:
            greeting_xml = self._connection.receive()
            logger.debug(f"Greeting: {greeting_xml!r}")
            self._greeting = XMLParser.parse_greeting(greeting_xml)
        except EPPError:
            self._connection.close()
            raise

        self._transport_failed = False
        self._state = SessionState.CONNECTED
        logger.info(f"Connected to {self._greeting.server_id or self.config.host}")
        return self._greeting

    def login(self, credentials: Credentials = None) -> ResultRecord:
        """
        Log in with the session credentials (or the ones given).

        Codes 1000 and 1001 move the session to LOGGED_IN; any other code
        is recorded and the session stays CONNECTED. There is no retry.

        Returns:
            Login result

        Raises:
            EPPSessionClosed: If the session was closed
            EPPConnectionError: If not connected
            EPPAlreadyLoggedIn: If already logged in
            EPPValidationError: If no credentials are available
        """
        self._ensure_open()
        if self._state is SessionState.LOGGED_IN:
            raise EPPAlreadyLoggedIn()
        if self._state is not SessionState.CONNECTED:
            raise EPPConnectionError("Not connected to server")

        credentials = credentials or self._credentials
        if credentials is None:
            raise EPPValidationError("No credentials to log in with")

        obj_uris = None
        ext_uris = None
        if self._greeting:
            obj_uris = self._greeting.obj_uris
            ext_uris = self._greeting.ext_uris

        spec = CommandSpec.login(
            client_id=credentials.client_id,
            password=credentials.password,
            obj_uris=obj_uris,
            ext_uris=ext_uris,
        )
        xml = XMLBuilder.build(spec, cl_trid=self._generate_cl_trid())
        result = self._exchange(xml)

        if result.success:
            self._state = SessionState.LOGGED_IN
            logger.info(f"Logged in as {credentials.client_id} ({result.code})")
        else:
            logger.warning(f"Login as {credentials.client_id} failed: {result.describe()}")

        return result

    def execute(self, spec: CommandSpec) -> ResultRecord:
        """
        Run one command and return its result.

        The result code never changes the session state; a 2xxx result is a
        normal return value.

        Args:
            spec: Command to run

        Returns:
            Command result

        Raises:
            EPPSessionClosed: If the session was closed
            EPPNotLoggedIn: If not logged in (nothing is sent)
            EPPValidationError: If the command is invalid (nothing is sent)
        """
        self._ensure_open()
        if self._state is not SessionState.LOGGED_IN:
            raise EPPNotLoggedIn()
        if spec.kind in (CommandKind.LOGIN, CommandKind.LOGOUT):
            raise EPPValidationError(f"Use login()/close() instead of executing {spec.kind.name}")
        if spec.kind is CommandKind.HELLO:
            raise EPPValidationError("Use hello() for the hello command")

        xml = XMLBuilder.build(spec, cl_trid=self._generate_cl_trid())
        result = self._exchange(xml)
        logger.info(f"{spec.kind.name}: {result.describe()}")
        return result

    def host_delete(self, name: str) -> ResultRecord:
        """
        Delete a host object.

        Args:
            name: Fully qualified host name

        Returns:
            Command result (2303 when the host does not exist)
        """
        return self.execute(CommandSpec.host_delete(name))

    def hello(self) -> Greeting:
        """
        Send hello and return the fresh greeting.

        Does not touch last_result.
        """
        self._ensure_open()
        if self._state not in (SessionState.CONNECTED, SessionState.LOGGED_IN):
            raise EPPConnectionError("Not connected to server")
        if self._transport_failed:
            raise EPPConnectionError("Connection is unusable after an earlier failure; close the session")

        try:
            greeting_xml = self._connection.send_and_receive(XMLBuilder.build_hello())
        except (EPPTimeoutError, EPPFrameError, EPPConnectionError):
            self._transport_failed = True
            raise

        self._greeting = XMLParser.parse_greeting(greeting_xml)
        return self._greeting

    def close(self) -> Optional[ResultRecord]:
        """
        Log out if logged in, then release the connection.

        Never raises. Logout failures are logged and the connection is
        released anyway.

        Returns:
            Logout result, or None when no logout exchange completed
        """
        if self._state is SessionState.CLOSED:
            return None

        logout_result = None
        if self._state is SessionState.LOGGED_IN and not self._transport_failed:
            xml = XMLBuilder.build_logout(cl_trid=self._generate_cl_trid())
            try:
                logout_result = self._exchange(xml, allow_session_end=True)
                logger.info(f"Logged out: {logout_result.describe()}")
            except EPPError as e:
                logger.warning(f"Logout failed during close: {e}")
        elif self._state is SessionState.LOGGED_IN:
            logger.warning("Skipping logout: connection is unusable")

        try:
            self._connection.close()
        except Exception as e:
            logger.warning(f"Error releasing connection: {e}")

        self._state = SessionState.CLOSED
        return logout_result

    def __enter__(self):
        """Context manager entry."""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
        return False
