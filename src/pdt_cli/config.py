"""
CLI Configuration

Loads the test configuration and turns it into the typed objects the
session engine takes.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from pdt_epp.models import ConnectionConfig, Credentials


# Default config locations
DEFAULT_CONFIG_PATHS = [
    Path.home() / ".pdt-epp" / "config.yaml",
    Path("/etc/pdt-epp/config.yaml"),
    Path("pdt_config.yaml"),
]


@dataclass
class HostDeleteSettings:
    """Parameters of the host delete scenario."""
    name: Optional[str] = None


@dataclass
class PDTConfig:
    """Complete PDT configuration."""
    connection: ConnectionConfig
    credentials: Credentials
    host_objects: bool = True
    host_delete: HostDeleteSettings = field(default_factory=HostDeleteSettings)

    @classmethod
    def from_dict(cls, data: dict, **overrides) -> "PDTConfig":
        """
        Create config from dictionary.

        Args:
            data: Configuration dictionary
            **overrides: Server settings from the command line (host, port,
                use_tls, timeout); None values are ignored

        Returns:
            PDTConfig instance

        Raises:
            ValueError: If required settings are missing or invalid
        """
        server_data = _section(data, "server")
        overrides = {k: v for k, v in overrides.items() if v is not None}

        host = overrides.get("host", server_data.get("host"))
        if not host:
            raise ValueError("Server host is required in configuration")

        try:
            port = int(overrides.get("port", server_data.get("port", 700)))
            timeout = float(overrides.get("timeout", server_data.get("timeout", 30)))
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid server port or timeout: {e}") from e

        # Like the -s switch: plain TCP unless TLS is asked for
        connection = ConnectionConfig(
            host=host,
            port=port,
            use_tls=bool(overrides.get("use_tls", server_data.get("tls", False))),
            sni_name=server_data.get("sni_name") or None,
            timeout=timeout,
            verify_server=bool(server_data.get("verify_server", True)),
            ca_file=_expand_path(server_data.get("ca_file")),
        )

        certs_data = _section(data, "certs")
        creds_data = _section(data, "credentials")
        if not creds_data.get("client_id"):
            raise ValueError("credentials.client_id is required in configuration")

        password = creds_data.get("password") or os.environ.get("EPP_PASSWORD")
        if not password:
            raise ValueError("credentials.password is required (or set EPP_PASSWORD)")

        credentials = Credentials(
            client_id=str(creds_data["client_id"]),
            password=str(password),
            cert_file=_expand_path(certs_data.get("cert_file")),
            cert_password=certs_data.get("cert_password"),
        )

        host_delete_data = _section(_section(data, "tests"), "host_delete")

        return cls(
            connection=connection,
            credentials=credentials,
            host_objects=bool(data.get("host_objects", True)),
            host_delete=HostDeleteSettings(name=host_delete_data.get("name")),
        )

    @classmethod
    def from_file(cls, path: Path, **overrides) -> "PDTConfig":
        """
        Load config from YAML file.

        Args:
            path: Path to config file
            **overrides: Server settings from the command line

        Returns:
            PDTConfig instance

        Raises:
            ValueError: If the file is not valid YAML or the settings are invalid
        """
        with open(path) as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"{path}: invalid YAML: {e}") from e

        if data is not None and not isinstance(data, dict):
            raise ValueError(f"{path}: expected a mapping at top level")

        return cls.from_dict(data or {}, **overrides)

    @classmethod
    def find_and_load(cls, **overrides) -> Optional["PDTConfig"]:
        """
        Find and load config from default locations.

        Returns:
            PDTConfig instance or None if not found
        """
        for path in DEFAULT_CONFIG_PATHS:
            if path.exists():
                return cls.from_file(path, **overrides)
        return None


def _section(data: dict, key: str) -> dict:
    """Get a nested mapping, empty when absent."""
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ValueError(f"'{key}' must be a mapping, got {type(value).__name__}")
    return value


def _expand_path(path: Optional[str]) -> Optional[str]:
    """Expand environment variables and ~ in path."""
    if not path:
        return None
    return os.path.expandvars(os.path.expanduser(path))


def create_sample_config() -> str:
    """
    Generate sample configuration YAML.

    Returns:
        Sample config as YAML string
    """
    return """# PDT EPP test configuration
# Copy to ~/.pdt-epp/config.yaml

server:
  host: epp.example.net
  port: 700
  tls: true   # Plain TCP when left out, like running without -s
  # sni_name: epp-ote.example.net   # Server name sent in the TLS handshake
  timeout: 30
  verify_server: true
  # ca_file: ~/.pdt-epp/ca.crt

certs:
  cert_file: ~/.pdt-epp/client.pem  # Certificate and key in one PEM file
  # cert_password: key_passphrase

credentials:
  client_id: your_registrar_id
  # password: your_password  # Or set EPP_PASSWORD

# Set to false when the registry has no host objects (attributes only)
host_objects: true

tests:
  host_delete:
    name: ns1.example.net
"""
