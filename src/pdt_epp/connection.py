"""
EPP Connection

Plain TCP or TLS connection to an EPP server, with optional SNI override
and client certificate authentication.
"""

import logging
import socket
import ssl
import time
from typing import Callable, Optional

from pdt_epp.exceptions import EPPConnectionError, EPPFrameError, EPPTimeoutError
from pdt_epp.framing import read_frame, write_frame
from pdt_epp.models import ConnectionConfig, Credentials

logger = logging.getLogger("epp.connection")


class EPPConnection:
    """
    Connection to an EPP server.

    Handles:
    - TCP connect with timeout, optional TLS 1.2+ on top
    - SNI server name override
    - Client certificate (with passphrase)
    - Frame-based I/O bounded by the same timeout

    The timeout bounds each whole operation (connect plus handshake, one
    frame sent, one frame received), not each underlying socket call.

    One connection owns one socket; it is not shared between sessions.
    """

    def __init__(self, config: ConnectionConfig, credentials: Credentials = None):
        """
        Initialize EPP connection.

        Args:
            config: Server address, TLS and timeout settings
            credentials: Only the client certificate fields are used here
        """
        self.config = config
        self.cert_file = credentials.cert_file if credentials else None
        self._cert_password = credentials.cert_password if credentials else None

        self._socket: Optional[socket.socket] = None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        """Check if connected to server."""
        return self._connected and self._socket is not None

    @property
    def address(self) -> str:
        return f"{self.config.host}:{self.config.port}"

    def connect(self) -> None:
        """
        Open the TCP connection and, if configured, run the TLS handshake.

        The whole sequence is bounded by config.timeout.

        Raises:
            EPPTimeoutError: If connect or handshake times out
            EPPConnectionError: If connection fails
        """
        if self._connected:
            raise EPPConnectionError("Already connected")

        config = self.config
        raw_socket = None
        deadline = time.monotonic() + config.timeout

        try:
            logger.debug(f"Connecting to {self.address} (tls={config.use_tls})")
            raw_socket = socket.create_connection(
                (config.host, config.port),
                timeout=config.timeout,
            )

            if config.use_tls:
                context = self._create_ssl_context()
                # The handshake gets whatever the TCP connect left over
                raw_socket.settimeout(_remaining(deadline))
                self._socket = context.wrap_socket(
                    raw_socket,
                    server_hostname=config.server_name,
                )
                cipher = self._socket.cipher()
                if cipher:
                    logger.debug(f"TLS cipher: {cipher[0]}, version: {cipher[1]}")
            else:
                self._socket = raw_socket

            self._connected = True
            logger.info(f"Connected to {self.address}")

        except socket.timeout as e:
            self._cleanup(raw_socket)
            raise EPPTimeoutError(f"Connection timeout to {self.address}") from e
        except ssl.SSLError as e:
            self._cleanup(raw_socket)
            raise EPPConnectionError(f"TLS error: {e}") from e
        except OSError as e:
            self._cleanup(raw_socket)
            raise EPPConnectionError(f"Socket error: {e}") from e

    def close(self) -> None:
        """Close connection to EPP server. Safe to call more than once."""
        if self._socket is None:
            return

        logger.debug(f"Disconnecting from {self.address}")
        self._cleanup()
        logger.info(f"Disconnected from {self.address}")

    def send(self, data: bytes) -> None:
        """
        Send one EPP frame to the server.

        Args:
            data: XML data to send

        Raises:
            EPPTimeoutError: If the write times out
            EPPFrameError: If the frame cannot be written
            EPPConnectionError: If send fails
        """
        if not self.is_connected:
            raise EPPConnectionError("Not connected")

        try:
            write_frame(self._bounded(self._socket.send), data)
            logger.debug(f"Sent {len(data)} bytes")
        except socket.timeout as e:
            raise EPPTimeoutError("Write timeout") from e
        except EPPFrameError:
            raise
        except OSError as e:
            raise EPPConnectionError(f"Send failed: {e}") from e

    def receive(self) -> bytes:
        """
        Receive one EPP frame from the server.

        Returns:
            XML data received

        Raises:
            EPPTimeoutError: If the read times out
            EPPFrameError: If the frame is invalid or the server hangs up
            EPPConnectionError: If receive fails
        """
        if not self.is_connected:
            raise EPPConnectionError("Not connected")

        try:
            data = read_frame(self._bounded(self._socket.recv))
            logger.debug(f"Received {len(data)} bytes")
            return data
        except socket.timeout as e:
            raise EPPTimeoutError("Read timeout") from e
        except EPPFrameError:
            raise
        except OSError as e:
            raise EPPConnectionError(f"Receive failed: {e}") from e

    def send_and_receive(self, data: bytes) -> bytes:
        """
        Send request and receive response.

        Args:
            data: XML request data

        Returns:
            XML response data
        """
        self.send(data)
        return self.receive()

    def _bounded(self, io_func: Callable) -> Callable:
        """
        Wrap a socket send/recv so all calls share one deadline.

        Each call gets only the time left, so a peer trickling bytes cannot
        stretch a single frame past config.timeout.
        """
        deadline = time.monotonic() + self.config.timeout
        sock = self._socket

        def call(arg):
            sock.settimeout(_remaining(deadline))
            return io_func(arg)

        return call

    def _create_ssl_context(self) -> ssl.SSLContext:
        """
        Create SSL context for EPP connection.

        Returns:
            Configured SSL context
        """
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        context.minimum_version = ssl.TLSVersion.TLSv1_2

        if self.config.verify_server:
            context.verify_mode = ssl.CERT_REQUIRED
            context.check_hostname = True
        else:
            # check_hostname must be cleared before verify_mode
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE

        if self.config.ca_file:
            context.load_verify_locations(self.config.ca_file)
        else:
            context.load_default_certs()

        if self.cert_file:
            # Cert and key in the same PEM file, key optionally encrypted
            context.load_cert_chain(
                certfile=self.cert_file,
                password=self._cert_password or None,
            )

        return context

    def _cleanup(self, raw_socket: socket.socket = None) -> None:
        """Clean up connection resources."""
        self._connected = False

        for sock in (self._socket, raw_socket):
            if sock is None:
                continue
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            try:
                sock.close()
            except OSError:
                pass

        self._socket = None

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
        return False

    def get_server_certificate(self) -> Optional[dict]:
        """
        Get server certificate info.

        Returns:
            Certificate info dict or None for plain TCP
        """
        if not isinstance(self._socket, ssl.SSLSocket):
            return None
        return self._socket.getpeercert()

    def get_cipher(self) -> Optional[tuple]:
        """
        Get current cipher info.

        Returns:
            Tuple of (cipher_name, protocol_version, bits) or None
        """
        if not isinstance(self._socket, ssl.SSLSocket):
            return None
        return self._socket.cipher()


def _remaining(deadline: float) -> float:
    """Seconds left until deadline; socket.timeout once it has passed."""
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise socket.timeout("timed out")
    return remaining
