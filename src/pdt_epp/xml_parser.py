"""
EPP XML Parser

Parses EPP greetings and responses per RFC 5730.
"""

import logging
from datetime import datetime
from typing import List, Optional

from lxml import etree

from pdt_epp.exceptions import EPPXMLError
from pdt_epp.models import Greeting, ResultBand, ResultRecord, classify_code

logger = logging.getLogger("epp.parser")

# Namespaces
NS = {
    "epp": "urn:ietf:params:xml:ns:epp-1.0",
    "host": "urn:ietf:params:xml:ns:host-1.0",
}

# Secure parser
_parser = etree.XMLParser(
    resolve_entities=False,
    no_network=True,
    remove_blank_text=True,
)


def _parse_datetime(text: str) -> Optional[datetime]:
    """Parse ISO datetime string."""
    if not text:
        return None
    try:
        text = text.replace("Z", "+00:00")
        if "." in text:
            # Drop fractional seconds, keep the offset
            head, _, tail = text.partition(".")
            offset = ""
            for sign in ("+", "-"):
                if sign in tail:
                    offset = sign + tail.split(sign, 1)[1]
                    break
            text = head + offset
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def _find_text(elem: etree._Element, path: str, default: str = None) -> Optional[str]:
    """Find element and return text."""
    found = elem.find(path, NS)
    if found is not None and found.text:
        return found.text
    return default


def _find_all_text(elem: etree._Element, path: str) -> List[str]:
    """Find all elements and return their text."""
    return [e.text for e in elem.findall(path, NS) if e.text]


def _parse_xml(xml_data: bytes) -> etree._Element:
    """Parse XML with secure parser."""
    if not xml_data or not xml_data.strip():
        raise EPPXMLError("Empty XML document")
    try:
        return etree.fromstring(xml_data, _parser)
    except etree.XMLSyntaxError as e:
        raise EPPXMLError(f"XML parse error: {e}") from e


class XMLParser:
    """
    Parses EPP XML greetings and responses.

    All methods are static and return structured objects.
    """

    @staticmethod
    def parse_greeting(xml_data: bytes) -> Greeting:
        """
        Parse EPP greeting.

        Args:
            xml_data: Raw XML bytes

        Returns:
            Greeting object

        Raises:
            EPPXMLError: If the document is malformed or not a greeting
        """
        root = _parse_xml(xml_data)

        greeting = root.find("epp:greeting", NS)
        if greeting is None:
            raise EPPXMLError("No greeting element found")

        return Greeting(
            server_id=_find_text(greeting, "epp:svID", ""),
            server_date=_parse_datetime(_find_text(greeting, "epp:svDate")),
            version=_find_all_text(greeting, "epp:svcMenu/epp:version"),
            lang=_find_all_text(greeting, "epp:svcMenu/epp:lang"),
            obj_uris=_find_all_text(greeting, "epp:svcMenu/epp:objURI"),
            ext_uris=_find_all_text(greeting, "epp:svcMenu/epp:svcExtension/epp:extURI"),
        )

    @staticmethod
    def parse_response(xml_data: bytes, allow_session_end: bool = False) -> ResultRecord:
        """
        Parse EPP response into a ResultRecord.

        Only codes 1000, 1001, 2000-2499 and, when allow_session_end is set
        (logout), 1500 are accepted. A failed command is a valid result, not
        an exception.

        Args:
            xml_data: Raw XML bytes
            allow_session_end: Accept 1500 (logout responses)

        Returns:
            ResultRecord

        Raises:
            EPPXMLError: If the XML is malformed or the result code is missing
                or outside the accepted bands
        """
        root = _parse_xml(xml_data)

        response = root.find("epp:response", NS)
        if response is None:
            raise EPPXMLError("No response element found")

        result = response.find("epp:result", NS)
        if result is None:
            raise EPPXMLError("No result element found")

        raw_code = (result.get("code") or "").strip()
        if len(raw_code) != 4 or not raw_code.isdigit():
            raise EPPXMLError(f"Invalid result code: {raw_code!r}")

        band = classify_code(int(raw_code))
        if band is None:
            raise EPPXMLError(f"Unexpected result code: {raw_code}")
        if band is ResultBand.ENDING_SESSION and not allow_session_end:
            raise EPPXMLError(f"Result code {raw_code} is only valid for logout")

        msg = _find_text(result, "epp:msg", "")
        reasons = _find_all_text(result, "epp:extValue/epp:reason")

        cl_trid = None
        sv_trid = None
        tr_id = response.find("epp:trID", NS)
        if tr_id is not None:
            cl_trid = _find_text(tr_id, "epp:clTRID")
            sv_trid = _find_text(tr_id, "epp:svTRID")

        record = ResultRecord(
            code=raw_code,
            message=msg.strip(),
            reason="; ".join(r.strip() for r in reasons) or None,
            cl_trid=cl_trid,
            sv_trid=sv_trid,
            raw_xml=xml_data.decode("utf-8", errors="replace"),
        )
        logger.debug(f"Result {record.code} ({band.value}) for clTRID {cl_trid}")
        return record
