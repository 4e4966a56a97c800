"""
Tests for the EPP transport: connect, TLS server name, timeouts, I/O errors.
"""

import socket
import ssl
import threading
import time

import pytest

from pdt_epp.connection import EPPConnection
from pdt_epp.exceptions import EPPConnectionError, EPPFrameError, EPPTimeoutError
from pdt_epp.models import ConnectionConfig, Credentials

from mock_server import frame_message


@pytest.fixture
def silent_listener():
    """A listening socket that never accepts or answers."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(1)
    yield sock
    sock.close()


@pytest.fixture
def dripping_server():
    """Accepts one client and sends it a frame one byte every 0.2s."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(1)
    done = threading.Event()

    def drip():
        conn, _ = sock.accept()
        try:
            for byte in frame_message(b"<epp>slow</epp>"):
                if done.wait(0.2):
                    break
                conn.sendall(bytes([byte]))
        except OSError:
            pass
        finally:
            conn.close()

    thread = threading.Thread(target=drip, daemon=True)
    thread.start()
    yield sock.getsockname()[1]
    done.set()
    thread.join(timeout=2)
    sock.close()


def free_port() -> int:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


class RecordingContext:
    """Stands in for an SSLContext and records the requested server name."""

    def __init__(self):
        self.server_hostname = None

    def wrap_socket(self, sock, server_hostname=None):
        self.server_hostname = server_hostname
        raise ssl.SSLError("handshake refused by test")


class TestConnectionConfig:
    """Tests for configuration checks."""

    @pytest.mark.parametrize("port", [0, 65536, -1])
    def test_port_range(self, port):
        with pytest.raises(ValueError):
            ConnectionConfig(host="epp.example.se", port=port)

    def test_port_must_be_int(self):
        with pytest.raises(ValueError):
            ConnectionConfig(host="epp.example.se", port="700")

    @pytest.mark.parametrize("timeout", [0, -5, None])
    def test_timeout_positive(self, timeout):
        with pytest.raises(ValueError):
            ConnectionConfig(host="epp.example.se", timeout=timeout)

    def test_host_required(self):
        with pytest.raises(ValueError):
            ConnectionConfig(host="")

    def test_server_name(self):
        assert ConnectionConfig(host="10.0.0.1").server_name == "10.0.0.1"
        config = ConnectionConfig(host="10.0.0.1", sni_name="epp.example.se")
        assert config.server_name == "epp.example.se"

    def test_immutable(self):
        config = ConnectionConfig(host="epp.example.se")
        with pytest.raises(AttributeError):
            config.port = 7000

    def test_credentials_repr_hides_secrets(self):
        creds = Credentials(
            client_id="registrar1",
            password="secret123",
            cert_file="client.pem",
            cert_password="keypass",
        )
        assert "secret123" not in repr(creds)
        assert "keypass" not in repr(creds)


class TestConnect:
    """Tests for connection establishment."""

    def test_plain_connect_and_close(self, mock_server, config):
        conn = EPPConnection(config)
        conn.connect()
        assert conn.is_connected
        assert conn.get_cipher() is None

        greeting = conn.receive()
        assert b"<greeting>" in greeting

        conn.close()
        assert not conn.is_connected
        conn.close()  # idempotent

    def test_context_manager(self, mock_server, config):
        with EPPConnection(config) as conn:
            assert conn.is_connected
        assert not conn.is_connected

    def test_connect_twice(self, mock_server, config):
        with EPPConnection(config) as conn:
            with pytest.raises(EPPConnectionError):
                conn.connect()

    def test_connection_refused(self):
        config = ConnectionConfig(host="127.0.0.1", port=free_port(), use_tls=False, timeout=2)
        conn = EPPConnection(config)

        with pytest.raises(EPPConnectionError):
            conn.connect()
        assert not conn.is_connected

    def test_sni_name_presented(self, silent_listener, monkeypatch):
        """TLS handshake uses the SNI override instead of the host."""
        context = RecordingContext()
        monkeypatch.setattr(EPPConnection, "_create_ssl_context", lambda self: context)

        port = silent_listener.getsockname()[1]
        config = ConnectionConfig(
            host="127.0.0.1", port=port, use_tls=True, sni_name="epp.example.se", timeout=2
        )

        with pytest.raises(EPPConnectionError) as exc:
            EPPConnection(config).connect()

        assert context.server_hostname == "epp.example.se"
        assert "TLS error" in str(exc.value)

    def test_host_used_without_sni(self, silent_listener, monkeypatch):
        context = RecordingContext()
        monkeypatch.setattr(EPPConnection, "_create_ssl_context", lambda self: context)

        port = silent_listener.getsockname()[1]
        config = ConnectionConfig(host="127.0.0.1", port=port, use_tls=True, timeout=2)

        with pytest.raises(EPPConnectionError):
            EPPConnection(config).connect()

        assert context.server_hostname == "127.0.0.1"

    def test_missing_client_certificate(self, silent_listener, tmp_path):
        port = silent_listener.getsockname()[1]
        config = ConnectionConfig(
            host="127.0.0.1", port=port, use_tls=True, verify_server=False, timeout=2
        )
        creds = Credentials("registrar1", "secret123", cert_file=str(tmp_path / "missing.pem"))

        with pytest.raises(EPPConnectionError):
            EPPConnection(config, creds).connect()


class TestTimeouts:
    """Tests for timeout handling."""

    def test_tls_handshake_timeout(self, silent_listener):
        """A peer that never answers the handshake times out near the bound."""
        port = silent_listener.getsockname()[1]
        config = ConnectionConfig(
            host="127.0.0.1", port=port, use_tls=True, verify_server=False, timeout=0.5
        )
        conn = EPPConnection(config)

        start = time.monotonic()
        with pytest.raises(EPPTimeoutError):
            conn.connect()
        elapsed = time.monotonic() - start

        assert elapsed < 5
        assert not conn.is_connected

    def test_timeout_is_builtin_timeout(self, silent_listener):
        port = silent_listener.getsockname()[1]
        config = ConnectionConfig(
            host="127.0.0.1", port=port, use_tls=True, verify_server=False, timeout=0.3
        )
        with pytest.raises(TimeoutError):
            EPPConnection(config).connect()

    def test_read_timeout(self, mock_server):
        mock_server.greeting = None
        config = ConnectionConfig(
            host=mock_server.host, port=mock_server.port, use_tls=False, timeout=0.5
        )

        with EPPConnection(config) as conn:
            start = time.monotonic()
            with pytest.raises(EPPTimeoutError):
                conn.receive()
            assert time.monotonic() - start < 5

    def test_slow_frame_times_out(self, dripping_server):
        """A server trickling bytes cannot stretch one read past the timeout."""
        config = ConnectionConfig(
            host="127.0.0.1", port=dripping_server, use_tls=False, timeout=0.5
        )

        with EPPConnection(config) as conn:
            start = time.monotonic()
            with pytest.raises(EPPTimeoutError):
                conn.receive()
            assert time.monotonic() - start < 1.5

    def test_timeout_applies_per_operation(self, mock_server):
        """Each frame gets the full timeout, not what earlier frames left."""
        config = ConnectionConfig(
            host=mock_server.host, port=mock_server.port, use_tls=False, timeout=0.5
        )

        with EPPConnection(config) as conn:
            conn.receive()
            time.sleep(0.6)
            response = conn.send_and_receive(b"<epp><hello/></epp>")
        assert b"greeting" in response


class TestIO:
    """Tests for frame I/O on the connection."""

    def test_not_connected(self, config):
        conn = EPPConnection(config)
        with pytest.raises(EPPConnectionError):
            conn.send(b"<epp/>")
        with pytest.raises(EPPConnectionError):
            conn.receive()

    def test_bad_frame_header(self, mock_server, config):
        mock_server.raw_greeting = b"\x00\x00\x00\x02"

        with EPPConnection(config) as conn:
            with pytest.raises(EPPFrameError):
                conn.receive()

    def test_server_hangs_up_mid_frame(self, mock_server, config):
        mock_server.raw_greeting = b"\x00\x00\x01\x00<epp"

        with EPPConnection(config) as conn:
            with pytest.raises(EPPFrameError):
                conn.receive()
