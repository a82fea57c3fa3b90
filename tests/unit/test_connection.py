"""Unit tests for the imaplib-backed IMAP connection."""

import imaplib

import pytest

from gmail_imap.exceptions import CommandError, ImapConnectionError, ParseError
from gmail_imap.imap.connection import ImapConnection, join_fetch_data


class TestJoinFetchData:
    def test_plain_lines(self) -> None:
        assert join_fetch_data([b"1 (UID 4)", b"2 (UID 5)"]) == [b"1 (UID 4)", b"2 (UID 5)"]

    def test_literal_is_inlined(self) -> None:
        data = [(b"1 (UID 4 RFC822.HEADER {3}", b"abc"), b" FLAGS ())", b"2 (UID 5)"]

        assert join_fetch_data(data) == [
            b"1 (UID 4 RFC822.HEADER {3}\r\nabc FLAGS ())",
            b"2 (UID 5)",
        ]

    def test_consecutive_literals_stay_together(self) -> None:
        data = [
            (b"1 (RFC822.HEADER {1}", b"a"),
            (b" RFC822.TEXT {1}", b"b"),
            b")",
            (b"2 (RFC822.HEADER {1}", b"c"),
            b")",
        ]

        assert join_fetch_data(data) == [
            b"1 (RFC822.HEADER {1}\r\na RFC822.TEXT {1}\r\nb)",
            b"2 (RFC822.HEADER {1}\r\nc)",
        ]

    def test_none_is_skipped(self) -> None:
        assert join_fetch_data([None]) == []


class TestImapConnection:
    def test_connect_uses_host_port_timeout(self, fake_imap) -> None:
        conn = ImapConnection("imap.test", 9993, timeout=5.0)

        assert conn.connect() is fake_imap
        assert conn.is_connected
        assert (fake_imap.host, fake_imap.port, fake_imap.timeout) == ("imap.test", 9993, 5.0)

    def test_connect_failure(self, unreachable_imap) -> None:
        conn = ImapConnection("imap.test", 9993)

        with pytest.raises(ImapConnectionError):
            conn.connect()
        assert not conn.is_connected

    def test_send_requires_connection(self) -> None:
        with pytest.raises(ImapConnectionError):
            ImapConnection("imap.test", 9993).send("NOOP")

    def test_rejected_command_raises_command_error(self, fake_imap) -> None:
        fake_imap.login_error = imaplib.IMAP4.error("[AUTHENTICATIONFAILED] Invalid credentials")
        conn = ImapConnection("imap.test", 9993)
        conn.connect()

        with pytest.raises(CommandError) as excinfo:
            conn.login("foo@gmail.com", "wrong")

        assert excinfo.value.command == "LOGIN"
        assert conn.is_connected

    def test_abort_drops_connection(self, fake_imap) -> None:
        fake_imap.login_error = imaplib.IMAP4.abort("socket error: EOF")
        conn = ImapConnection("imap.test", 9993)
        conn.connect()

        with pytest.raises(ImapConnectionError):
            conn.login("foo@gmail.com", "secret")

        assert not conn.is_connected

    def test_fetch_parses_responses(self, fake_imap, sample_fetch_line: bytes) -> None:
        fake_imap.fetch_data = [sample_fetch_line[2:], b"13 (UID 5 X-GM-MSGID 9)"]
        conn = ImapConnection("imap.test", 9993)
        conn.connect()

        results = conn.fetch("12:13", ["UID", "X-GM-MSGID", "X-GM-THRID", "FLAGS", "ENVELOPE"])

        assert fake_imap.calls[-1] == (
            "FETCH",
            "12:13",
            "(UID X-GM-MSGID X-GM-THRID FLAGS ENVELOPE)",
        )
        assert [r.seqno for r in results] == [12, 13]
        assert results[0].attr["X-GM-MSGID"] == 1484169545317055256
        assert results[1].attr == {"UID": 5, "X-GM-MSGID": 9}

    def test_uid_fetch(self, fake_imap) -> None:
        fake_imap.fetch_data = [b"1 (UID 42 X-GM-THRID 7)"]
        conn = ImapConnection("imap.test", 9993)
        conn.connect()

        results = conn.fetch("42", "UID X-GM-THRID", uid=True)

        assert fake_imap.calls[-1] == ("UID", "FETCH", "42", "(UID X-GM-THRID)")
        assert results[0].attr["X-GM-THRID"] == 7

    def test_fetch_unknown_attribute(self, fake_imap) -> None:
        fake_imap.fetch_data = [b"1 (UID 42 X-BOGUS 1)"]
        conn = ImapConnection("imap.test", 9993)
        conn.connect()

        with pytest.raises(ParseError) as excinfo:
            conn.fetch("1", "(UID X-BOGUS)")

        assert excinfo.value.offending_token == "X-BOGUS"

    def test_select(self, fake_imap) -> None:
        conn = ImapConnection("imap.test", 9993)
        conn.connect()

        assert conn.select("[Gmail]/All Mail", readonly=True) == 3
        assert fake_imap.calls[-1] == ("SELECT", "[Gmail]/All Mail", True)

    def test_context_manager_logs_out(self, fake_imap) -> None:
        with ImapConnection("imap.test", 9993) as conn:
            assert conn.is_connected

        assert fake_imap.logged_out
        assert not conn.is_connected

    def test_disconnect_failure_is_reported(self, fake_imap) -> None:
        fake_imap.logout_error = imaplib.IMAP4.abort("socket error: EOF")
        conn = ImapConnection("imap.test", 9993)
        conn.connect()

        with pytest.raises(ImapConnectionError):
            conn.disconnect()
        assert not conn.is_connected


class TestThroughImaplib:
    """FETCH data as imaplib itself files it, read off a scripted server."""

    def _selected(self) -> ImapConnection:
        conn = ImapConnection("imap.test", 9993)
        conn.connect()
        conn.login("foo@gmail.com", "secret")
        assert conn.select("INBOX") == 3
        return conn

    def test_fetch(self, scripted_imap: dict[str, bytes], sample_fetch_line: bytes) -> None:
        scripted_imap["SELECT"] = b"* 3 EXISTS\r\n"
        scripted_imap["FETCH"] = (
            b"* 1 FETCH (UID 4 RFC822.HEADER {13}\r\nSubject: Hi\r\n X-GM-MSGID 9)\r\n"
            + sample_fetch_line
            + b"\r\n"
        )
        conn = self._selected()

        results = conn.fetch("1:12", ["UID", "RFC822.HEADER", "X-GM-MSGID"])

        assert [r.seqno for r in results] == [1, 12]
        assert results[0].attr == {"UID": 4, "RFC822.HEADER": b"Subject: Hi\r\n", "X-GM-MSGID": 9}
        assert results[1].attr["X-GM-THRID"] == 1484169545317055256
        assert results[1].attr["ENVELOPE"].subject == "Weekly report"
        assert conn.handle.sent[-1].endswith(b" FETCH 1:12 (UID RFC822.HEADER X-GM-MSGID)\r\n")
        conn.disconnect()

    def test_uid_fetch(self, scripted_imap: dict[str, bytes]) -> None:
        scripted_imap["SELECT"] = b"* 3 EXISTS\r\n"
        scripted_imap["UID"] = b"* 2 FETCH (UID 42 X-GM-THRID 7)\r\n"
        conn = self._selected()

        results = conn.fetch("42", "UID X-GM-THRID", uid=True)

        assert results[0].seqno == 2
        assert results[0].attr == {"UID": 42, "X-GM-THRID": 7}

    def test_unknown_attribute(self, scripted_imap: dict[str, bytes]) -> None:
        scripted_imap["SELECT"] = b"* 3 EXISTS\r\n"
        scripted_imap["FETCH"] = b"* 1 FETCH (UID 42 X-BOGUS 1)\r\n"
        conn = self._selected()

        with pytest.raises(ParseError) as excinfo:
            conn.fetch("1", "(UID X-BOGUS)")

        assert excinfo.value.offending_token == "X-BOGUS"
