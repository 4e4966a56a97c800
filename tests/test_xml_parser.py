"""
Tests for EPP XML parser module.
"""

import pytest

from pdt_epp.exceptions import EPPXMLError
from pdt_epp.models import ResultBand
from pdt_epp.xml_parser import XMLParser


def response(code: str, msg: str = "Command completed successfully", ext: str = "") -> bytes:
    return f'''<?xml version="1.0" encoding="UTF-8"?>
    <epp xmlns="urn:ietf:params:xml:ns:epp-1.0">
        <response>
            <result code="{code}">
                <msg>{msg}</msg>{ext}
            </result>
            <trID>
                <clTRID>TEST-001</clTRID>
                <svTRID>SV-12345</svTRID>
            </trID>
        </response>
    </epp>'''.encode()


class TestParseGreeting:
    """Tests for greeting parsing."""

    GREETING_XML = b'''<?xml version="1.0" encoding="UTF-8"?>
    <epp xmlns="urn:ietf:params:xml:ns:epp-1.0">
        <greeting>
            <svID>Example Registry EPP Server</svID>
            <svDate>2025-01-15T10:00:00.0Z</svDate>
            <svcMenu>
                <version>1.0</version>
                <lang>en</lang>
                <lang>sv</lang>
                <objURI>urn:ietf:params:xml:ns:domain-1.0</objURI>
                <objURI>urn:ietf:params:xml:ns:host-1.0</objURI>
                <svcExtension>
                    <extURI>urn:ietf:params:xml:ns:secDNS-1.1</extURI>
                </svcExtension>
            </svcMenu>
        </greeting>
    </epp>'''

    def test_parse_greeting(self):
        """Parse server greeting."""
        greeting = XMLParser.parse_greeting(self.GREETING_XML)

        assert greeting.server_id == "Example Registry EPP Server"
        assert greeting.version == ["1.0"]
        assert greeting.lang == ["en", "sv"]
        assert greeting.server_date.year == 2025
        assert greeting.supports("urn:ietf:params:xml:ns:host-1.0")
        assert greeting.supports("urn:ietf:params:xml:ns:secDNS-1.1")
        assert not greeting.supports("urn:ietf:params:xml:ns:contact-1.0")

    def test_not_a_greeting(self):
        with pytest.raises(EPPXMLError):
            XMLParser.parse_greeting(response("1000"))

    @pytest.mark.parametrize("data", [b"", b"   ", b"<epp><greeting>"])
    def test_malformed_greeting(self, data):
        with pytest.raises(EPPXMLError):
            XMLParser.parse_greeting(data)


class TestParseResponse:
    """Tests for response parsing."""

    def test_parse_success_response(self):
        """Parse successful response."""
        result = XMLParser.parse_response(response("1000"))

        assert result.code == "1000"
        assert result.message == "Command completed successfully"
        assert result.reason is None
        assert result.cl_trid == "TEST-001"
        assert result.sv_trid == "SV-12345"
        assert result.band is ResultBand.OK
        assert result.success
        assert not result.failed

    def test_action_pending(self):
        result = XMLParser.parse_response(response("1001", "Command completed successfully; action pending"))
        assert result.success

    def test_parse_error_response(self):
        """Parse error response with no extended reason."""
        result = XMLParser.parse_response(response("2303", "Object does not exist"))

        assert result.code == "2303"
        assert result.message == "Object does not exist"
        assert result.failed
        assert not result.success
        assert result.describe() == "2303 - Object does not exist"

    def test_reason_surfaced(self):
        """extValue/reason is returned verbatim."""
        ext = """
                <extValue>
                    <value><host:name xmlns:host="urn:ietf:params:xml:ns:host-1.0">ns1.example.se</host:name></value>
                    <reason>Host is linked to domain example.se</reason>
                </extValue>"""
        result = XMLParser.parse_response(response("2305", "Object association prohibits operation", ext))

        assert result.reason == "Host is linked to domain example.se"
        assert result.describe() == (
            "2305 - Object association prohibits operation (Host is linked to domain example.se)"
        )

    def test_multiple_reasons_joined(self):
        ext = """
                <extValue><value><a/></value><reason>first</reason></extValue>
                <extValue><value><b/></value><reason>second</reason></extValue>"""
        result = XMLParser.parse_response(response("2004", "Parameter value range error", ext))
        assert result.reason == "first; second"

    def test_session_end_only_for_logout(self):
        """1500 is accepted only when a logout result is expected."""
        with pytest.raises(EPPXMLError):
            XMLParser.parse_response(response("1500"))

        result = XMLParser.parse_response(response("1500"), allow_session_end=True)
        assert result.session_ended
        assert result.band is ResultBand.ENDING_SESSION

    @pytest.mark.parametrize("code", ["1300", "1301", "2500", "2502", "3000", "0999"])
    def test_codes_outside_bands(self, code):
        with pytest.raises(EPPXMLError):
            XMLParser.parse_response(response(code))

    @pytest.mark.parametrize("code", ["", "abcd", "100", "10000", "1000a"])
    def test_malformed_code(self, code):
        with pytest.raises(EPPXMLError):
            XMLParser.parse_response(response(code))

    def test_missing_result(self):
        xml = b'''<?xml version="1.0" encoding="UTF-8"?>
        <epp xmlns="urn:ietf:params:xml:ns:epp-1.0"><response/></epp>'''
        with pytest.raises(EPPXMLError):
            XMLParser.parse_response(xml)

    def test_missing_code_attribute(self):
        xml = b'''<?xml version="1.0" encoding="UTF-8"?>
        <epp xmlns="urn:ietf:params:xml:ns:epp-1.0">
            <response><result><msg>No code</msg></result></response>
        </epp>'''
        with pytest.raises(EPPXMLError):
            XMLParser.parse_response(xml)

    def test_greeting_is_not_a_response(self):
        with pytest.raises(EPPXMLError):
            XMLParser.parse_response(TestParseGreeting.GREETING_XML)

    def test_invalid_xml(self):
        """Raise error for invalid XML."""
        with pytest.raises(EPPXMLError):
            XMLParser.parse_response(b"<invalid>xml")

    def test_external_entities_not_resolved(self):
        xml = b'''<?xml version="1.0"?>
        <!DOCTYPE epp [<!ENTITY xxe SYSTEM "file:///etc/passwd">]>
        <epp xmlns="urn:ietf:params:xml:ns:epp-1.0">
            <response><result code="1000"><msg>&xxe;</msg></result></response>
        </epp>'''
        result = XMLParser.parse_response(xml)
        assert "root:" not in result.message
