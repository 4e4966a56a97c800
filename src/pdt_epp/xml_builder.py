"""
EPP XML Builder

Builds EPP XML commands per RFC 5730 and RFC 5732.
"""

import re
from typing import List

from lxml import etree

from pdt_epp.exceptions import EPPValidationError
from pdt_epp.models import CommandKind, CommandSpec

# Namespace URIs
EPP_NS = "urn:ietf:params:xml:ns:epp-1.0"
DOMAIN_NS = "urn:ietf:params:xml:ns:domain-1.0"
CONTACT_NS = "urn:ietf:params:xml:ns:contact-1.0"
HOST_NS = "urn:ietf:params:xml:ns:host-1.0"

DEFAULT_OBJ_URIS = [DOMAIN_NS, CONTACT_NS, HOST_NS]

# RFC 1035 limits
MAX_HOST_NAME_LENGTH = 253
_LABEL_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?$")


def validate_host_name(name: str) -> str:
    """
    Check that name is a fully qualified host name.

    A single trailing dot is accepted and stripped.

    Returns:
        The name as it will be sent

    Raises:
        EPPValidationError: If the name is empty or malformed
    """
    if not isinstance(name, str) or not name.strip():
        raise EPPValidationError("Host name is required")

    name = name.strip()
    if name.endswith("."):
        name = name[:-1]

    if len(name) > MAX_HOST_NAME_LENGTH:
        raise EPPValidationError(
            f"Host name too long: {len(name)} characters (max {MAX_HOST_NAME_LENGTH})"
        )

    labels = name.split(".")
    if len(labels) < 2:
        raise EPPValidationError(f"Host name is not fully qualified: {name}")

    for label in labels:
        if not _LABEL_RE.match(label):
            raise EPPValidationError(f"Invalid label {label!r} in host name {name}")

    return name


def _require(value: str, what: str) -> str:
    if not value:
        raise EPPValidationError(f"{what} is required")
    return value


def _create_epp_root() -> etree._Element:
    """Create EPP root element with namespaces."""
    nsmap = {
        None: EPP_NS,
        "host": HOST_NS,
    }
    return etree.Element("{%s}epp" % EPP_NS, nsmap=nsmap)


def _add_cl_trid(command: etree._Element, cl_trid: str = None) -> None:
    """Add client transaction ID to command."""
    if cl_trid:
        etree.SubElement(command, "{%s}clTRID" % EPP_NS).text = cl_trid


def _to_bytes(root: etree._Element) -> bytes:
    """Convert element tree to XML bytes."""
    return etree.tostring(
        root,
        xml_declaration=True,
        encoding="UTF-8",
        pretty_print=False
    )


class XMLBuilder:
    """
    Builds EPP XML commands.

    All methods are static, perform no I/O and return XML bytes ready to
    frame and send.
    """

    @staticmethod
    def build(spec: CommandSpec, cl_trid: str = None) -> bytes:
        """
        Build the XML for any supported command.

        Args:
            spec: Command kind and parameters
            cl_trid: Client transaction ID (ignored for hello)

        Raises:
            EPPValidationError: If parameters are invalid or the kind is unknown
        """
        params = spec.params

        if spec.kind is CommandKind.HELLO:
            return XMLBuilder.build_hello()

        if spec.kind is CommandKind.LOGIN:
            return XMLBuilder.build_login(
                client_id=params.get("client_id"),
                password=params.get("password"),
                version=params.get("version", "1.0"),
                lang=params.get("lang", "en"),
                obj_uris=params.get("obj_uris"),
                ext_uris=params.get("ext_uris"),
                cl_trid=cl_trid,
            )

        if spec.kind is CommandKind.LOGOUT:
            return XMLBuilder.build_logout(cl_trid=cl_trid)

        if spec.kind is CommandKind.HOST_DELETE:
            return XMLBuilder.build_host_delete(params.get("name"), cl_trid=cl_trid)

        raise EPPValidationError(f"Unsupported command: {spec.kind}")

    # =========================================================================
    # Session Commands
    # =========================================================================

    @staticmethod
    def build_hello() -> bytes:
        """Build hello command."""
        root = _create_epp_root()
        etree.SubElement(root, "{%s}hello" % EPP_NS)
        return _to_bytes(root)

    @staticmethod
    def build_login(
        client_id: str,
        password: str,
        version: str = "1.0",
        lang: str = "en",
        obj_uris: List[str] = None,
        ext_uris: List[str] = None,
        cl_trid: str = None,
    ) -> bytes:
        """
        Build login command.

        Args:
            client_id: Client identifier
            password: Password
            version: EPP version
            lang: Language
            obj_uris: Object URIs to use (default: domain, contact, host)
            ext_uris: Extension URIs to use
            cl_trid: Client transaction ID
        """
        _require(client_id, "Login client ID")
        _require(password, "Login password")

        if not obj_uris:
            obj_uris = DEFAULT_OBJ_URIS

        root = _create_epp_root()
        command = etree.SubElement(root, "{%s}command" % EPP_NS)
        login = etree.SubElement(command, "{%s}login" % EPP_NS)

        etree.SubElement(login, "{%s}clID" % EPP_NS).text = client_id
        etree.SubElement(login, "{%s}pw" % EPP_NS).text = password

        options = etree.SubElement(login, "{%s}options" % EPP_NS)
        etree.SubElement(options, "{%s}version" % EPP_NS).text = version
        etree.SubElement(options, "{%s}lang" % EPP_NS).text = lang

        svcs = etree.SubElement(login, "{%s}svcs" % EPP_NS)
        for uri in obj_uris:
            etree.SubElement(svcs, "{%s}objURI" % EPP_NS).text = uri

        if ext_uris:
            svc_ext = etree.SubElement(svcs, "{%s}svcExtension" % EPP_NS)
            for uri in ext_uris:
                etree.SubElement(svc_ext, "{%s}extURI" % EPP_NS).text = uri

        _add_cl_trid(command, cl_trid)
        return _to_bytes(root)

    @staticmethod
    def build_logout(cl_trid: str = None) -> bytes:
        """Build logout command."""
        root = _create_epp_root()
        command = etree.SubElement(root, "{%s}command" % EPP_NS)
        etree.SubElement(command, "{%s}logout" % EPP_NS)
        _add_cl_trid(command, cl_trid)
        return _to_bytes(root)

    # =========================================================================
    # Host Commands
    # =========================================================================

    @staticmethod
    def build_host_delete(name: str, cl_trid: str = None) -> bytes:
        """Build host:delete command."""
        name = validate_host_name(name)

        root = _create_epp_root()
        command = etree.SubElement(root, "{%s}command" % EPP_NS)
        delete = etree.SubElement(command, "{%s}delete" % EPP_NS)

        host_delete = etree.SubElement(delete, "{%s}delete" % HOST_NS)
        etree.SubElement(host_delete, "{%s}name" % HOST_NS).text = name

        _add_cl_trid(command, cl_trid)
        return _to_bytes(root)
