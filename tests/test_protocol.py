"""Tests for status response parsing."""

from imap_session_lib.protocol import Response


def test_parse_greeting_with_capability_code():
    response = Response.parse(b"* OK [CAPABILITY IMAP4rev1 AUTH=PLAIN] Dovecot ready.\r\n")
    assert response.tagged is False
    assert response.status == "OK"
    assert response.code == "CAPABILITY"
    assert response.code_data == "IMAP4rev1 AUTH=PLAIN"
    assert response.text == "Dovecot ready."


def test_parse_greeting_without_code():
    response = Response.parse("* OK Gimap ready for requests from 192.0.2.1")
    assert response.code is None
    assert response.text == "Gimap ready for requests from 192.0.2.1"


def test_parse_code_without_data():
    response = Response.parse(b"* OK [ALERT] Maintenance tonight")
    assert response.code == "ALERT"
    assert response.code_data is None
    assert response.text == "Maintenance tonight"


def test_parse_rejects_non_status_lines():
    assert Response.parse(None) is None
    assert Response.parse(b"A001 OK done") is None


def test_from_tagged():
    response = Response.from_tagged(b"[CAPABILITY IMAP4rev1 IDLE] Logged in")
    assert response.tagged is True
    assert response.status == "OK"
    assert response.code == "CAPABILITY"
    assert response.code_data == "IMAP4rev1 IDLE"
    assert response.text == "Logged in"


def test_from_tagged_plain_text():
    response = Response.from_tagged(b"LOGIN completed")
    assert response.code is None
    assert response.text == "LOGIN completed"
