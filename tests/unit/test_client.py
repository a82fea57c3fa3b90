"""Unit tests for the connect() entry points."""

import imaplib

import pytest

from gmail_imap import connect, connect_or_raise
from gmail_imap.auth import PlainAuth, StrategyRegistry, XOAuth
from gmail_imap.exceptions import AuthorizationError, ConfigurationError, ImapConnectionError


class TestConnect:
    """Test suite for connect()."""

    def test_defaults_to_plain(self, fake_imap, mock_settings) -> None:
        gmail = connect("foo@gmail.com", "secret", settings=mock_settings)

        assert isinstance(gmail, PlainAuth)
        assert gmail.logged_in
        assert fake_imap.calls == [("LOGIN", "foo@gmail.com", "secret")]

    def test_scheme_by_name(self, fake_imap, mock_settings) -> None:
        gmail = connect(
            "foo@gmail.com", scheme="xoauth", settings=mock_settings, token="t", secret="s"
        )

        assert isinstance(gmail, XOAuth)
        assert gmail.logged_in
        assert fake_imap.calls == [("AUTHENTICATE", "XOAUTH")]

    def test_default_scheme_from_settings(self, fake_imap, mock_settings) -> None:
        settings = mock_settings.model_copy(update={"default_scheme": "xoauth2"})

        gmail = connect("foo@gmail.com", settings=settings, access_token="ya29.token")

        assert gmail.scheme == "xoauth2"

    def test_custom_registry(self, fake_imap, mock_settings) -> None:
        registry = StrategyRegistry()
        registry.register("password", PlainAuth)

        gmail = connect(
            "foo@gmail.com", "secret", scheme="password", registry=registry, settings=mock_settings
        )

        assert isinstance(gmail, PlainAuth)
        with pytest.raises(ConfigurationError):
            connect("foo@gmail.com", scheme="xoauth", registry=registry, settings=mock_settings)

    def test_unreachable_server_is_not_raised(self, unreachable_imap, mock_settings) -> None:
        gmail = connect("foo@gmail.com", "secret", settings=mock_settings)

        assert not gmail.logged_in

    def test_unknown_scheme(self, mock_settings) -> None:
        with pytest.raises(ConfigurationError) as excinfo:
            connect("foo@gmail.com", "secret", scheme="kerberos", settings=mock_settings)

        assert excinfo.value.requested_scheme == "kerberos"

    def test_positional_password_for_token_scheme(self, fake_imap, mock_settings) -> None:
        with pytest.raises(ConfigurationError) as excinfo:
            connect(
                "foo@gmail.com",
                "pw",
                scheme="xoauth",
                settings=mock_settings,
                token="t",
                secret="s",
            )

        assert excinfo.value.requested_scheme == "xoauth"
        assert fake_imap.calls == []

    def test_missing_password(self, fake_imap, mock_settings) -> None:
        with pytest.raises(ConfigurationError) as excinfo:
            connect("foo@gmail.com", settings=mock_settings)

        assert excinfo.value.requested_scheme == "plain"
        assert fake_imap.calls == []

    def test_context_manager(self, fake_imap, mock_settings) -> None:
        with connect("foo@gmail.com", "secret", settings=mock_settings) as gmail:
            assert gmail.logged_in

        assert fake_imap.logged_out


class TestConnectOrRaise:
    """Test suite for connect_or_raise()."""

    def test_success(self, fake_imap, mock_settings) -> None:
        gmail = connect_or_raise("foo@gmail.com", "secret", settings=mock_settings)

        assert gmail.logged_in

    def test_unreachable_server(self, unreachable_imap, mock_settings) -> None:
        with pytest.raises(ImapConnectionError):
            connect_or_raise("foo@gmail.com", "secret", settings=mock_settings)

    def test_rejected_credentials(self, fake_imap, mock_settings) -> None:
        fake_imap.login_error = imaplib.IMAP4.error("[AUTHENTICATIONFAILED] Invalid credentials")

        with pytest.raises(AuthorizationError) as excinfo:
            connect_or_raise("foo@gmail.com", "wrong", settings=mock_settings)

        assert excinfo.value.username == "foo@gmail.com"

    def test_non_ok_status(self, fake_imap, mock_settings) -> None:
        fake_imap.login_result = ("NO", [b"LOGIN failed"])

        with pytest.raises(AuthorizationError):
            connect_or_raise("foo@gmail.com", "secret", settings=mock_settings)
