"""
PDT CLI Main Entry Point

Runs EPP conformance scenarios against a registry.
Exit status: 0 pass, 1 fail, 2 configuration error.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from pdt_epp import EPPSession
from pdt_epp.exceptions import EPPError
from pdt_cli.config import PDTConfig, create_sample_config

logger = logging.getLogger("epp.cli")

EXIT_PASS = 0
EXIT_FAIL = 1
EXIT_CONFIG = 2


# Global state for the CLI run
class CLIState:
    config_path: Optional[str] = None
    overrides: dict = {}


state = CLIState()


def load_config() -> PDTConfig:
    """Load configuration, exiting with status 2 when it is unusable."""
    try:
        if state.config_path:
            config = PDTConfig.from_file(Path(state.config_path), **state.overrides)
        else:
            config = PDTConfig.find_and_load(**state.overrides)
    except (OSError, ValueError) as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(EXIT_CONFIG)

    if config is None:
        click.echo("No configuration file found (use --config)", err=True)
        sys.exit(EXIT_CONFIG)

    return config


# =============================================================================
# Main CLI Group
# =============================================================================

@click.group()
@click.option("--config", "-c", type=click.Path(exists=True), help="Config file path")
@click.option("--host", "-h", help="EPP server hostname")
@click.option("--port", "-p", type=int, help="EPP server port")
@click.option("--ssl/--no-ssl", "-s", "use_tls", default=None, help="Use TLS (default: server.tls, else plain TCP)")
@click.option("--timeout", "-t", type=float, help="Connect/read timeout in seconds")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.version_option(version="1.0.0")
def cli(config, host, port, use_tls, timeout, debug):
    """
    PDT EPP - registry conformance tests

    \b
    Examples:
      pdt-epp -c config.yaml -h epp.example.net -p 700 -s -t 30 host-delete
      pdt-epp -c config.yaml host-delete ns1.example.net
    """
    if debug:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    state.config_path = config
    state.overrides = {
        "host": host,
        "port": port,
        "use_tls": use_tls,
        "timeout": timeout,
    }


# =============================================================================
# Scenarios
# =============================================================================

@cli.command("host-delete")
@click.argument("name", required=False)
def host_delete(name):
    """EppHostDelete01 - delete a host object."""
    click.echo("EppHostDelete01 - test Delete host to tld epp server")
    config = load_config()

    if not config.host_objects:
        click.echo("Host Object not supported - NOT Tested - OK")
        sys.exit(EXIT_PASS)

    name = name or config.host_delete.name
    if not name:
        click.echo("Configuration error: no host name (tests.host_delete.name)", err=True)
        sys.exit(EXIT_CONFIG)

    session = EPPSession(config.connection, config.credentials, cl_trid_prefix="EppHostDelete01")
    try:
        session.open()
        login = session.login()
        if not login.success:
            click.echo(f"Login FAILED - {login.describe()}")
            sys.exit(EXIT_FAIL)

        result = session.host_delete(name)
        if result.success:
            click.echo(f"Host Delete ({name}) OK - ResultCode = {result.code}")
        else:
            click.echo(f"Host Delete ({name}) FAILED - {result.describe()}")
            sys.exit(EXIT_FAIL)

    except EPPError as e:
        logger.debug("Scenario aborted", exc_info=True)
        click.echo(f"Host Delete ({name}) FAILED - {e}")
        sys.exit(EXIT_FAIL)
    finally:
        logout = session.close()

    if logout is None or not logout.session_ended:
        code = logout.code if logout else "none"
        click.echo(f"Logout FAILED - ResultCode != 1500 ({code})")
        sys.exit(EXIT_FAIL)

    click.echo(f"Logout OK - ResultCode = {logout.code}")
    sys.exit(EXIT_PASS)


@cli.command("sample-config")
def sample_config():
    """Print a sample configuration file."""
    click.echo(create_sample_config())


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
