"""Tests for the FTP relay."""

import ftplib
from dataclasses import replace
from unittest.mock import MagicMock

import pytest
import requests

from ledger_book.ftp_relay import (
    INVALID_ARGUMENT,
    UNAUTHENTICATED,
    UNKNOWN,
    FtpRelay,
    RelayError,
)
from ledger_book.schemas import FtpCredentials

CREDENTIALS = FtpCredentials(host="ftp.example", port=2121, user="bob", password="secret")


def download_session(*chunks):
    session = MagicMock()
    response = session.get.return_value.__enter__.return_value
    response.iter_content.return_value = list(chunks)
    return session, response


def recording_ftp():
    ftp = MagicMock()
    ftp.uploaded = b""

    def storbinary(command, handle):
        ftp.uploaded += handle.read()

    ftp.storbinary.side_effect = storbinary
    return ftp


class TestAuthentication:
    def test_accepts_configured_token(self, app_config):
        FtpRelay(app_config, session=MagicMock()).authenticate("relay-token")

    @pytest.mark.parametrize("token", [None, "", "wrong"])
    def test_rejects_bad_tokens(self, app_config, token):
        with pytest.raises(RelayError) as excinfo:
            FtpRelay(app_config, session=MagicMock()).authenticate(token)
        assert excinfo.value.code == UNAUTHENTICATED

    def test_unset_token_rejects_everything(self, app_config):
        relay = FtpRelay(replace(app_config, api_token=None), session=MagicMock())
        with pytest.raises(RelayError) as excinfo:
            relay.authenticate("anything")
        assert excinfo.value.code == UNAUTHENTICATED


class TestRelay:
    def test_uploads_downloaded_file(self, app_config):
        session, _ = download_session(b"abc", b"def")
        ftp = recording_ftp()
        relay = FtpRelay(app_config, session=session, ftp_factory=lambda secure: ftp)

        result = relay.relay("https://files.example/a.pdf", "docs/a.pdf", CREDENTIALS)

        assert result.success
        assert result.path == "docs/a.pdf"
        assert ftp.uploaded == b"abcdef"
        ftp.connect.assert_called_once_with("ftp.example", 2121, timeout=30)
        ftp.login.assert_called_once_with("bob", "secret")
        assert ftp.storbinary.call_args[0][0] == "STOR docs/a.pdf"
        ftp.close.assert_called_once()

    def test_secure_flag_reaches_factory(self, app_config):
        session, _ = download_session(b"x")
        requested = []

        def factory(secure):
            requested.append(secure)
            return recording_ftp()

        relay = FtpRelay(app_config, session=session, ftp_factory=factory)
        relay.relay("https://files.example/a.pdf", "a.pdf", CREDENTIALS.model_copy(update={"secure": True}))
        assert requested == [True]

    @pytest.mark.parametrize(
        "file_url, remote_path, credentials",
        [
            (None, "a.pdf", CREDENTIALS),
            ("https://files.example/a.pdf", "", CREDENTIALS),
            ("https://files.example/a.pdf", "a.pdf", None),
        ],
    )
    def test_missing_arguments(self, app_config, file_url, remote_path, credentials):
        session = MagicMock()
        with pytest.raises(RelayError) as excinfo:
            FtpRelay(app_config, session=session).relay(file_url, remote_path, credentials)
        assert excinfo.value.code == INVALID_ARGUMENT
        session.get.assert_not_called()

    def test_download_failure(self, app_config):
        session, response = download_session()
        response.raise_for_status.side_effect = requests.HTTPError("404 Not Found")
        ftp = recording_ftp()
        relay = FtpRelay(app_config, session=session, ftp_factory=lambda secure: ftp)
        with pytest.raises(RelayError) as excinfo:
            relay.relay("https://files.example/a.pdf", "a.pdf", CREDENTIALS)
        assert excinfo.value.code == UNKNOWN
        ftp.connect.assert_not_called()

    def test_ftp_failure_closes_connection(self, app_config):
        session, _ = download_session(b"abc")
        ftp = recording_ftp()
        ftp.login.side_effect = ftplib.error_perm("530 Login incorrect")
        relay = FtpRelay(app_config, session=session, ftp_factory=lambda secure: ftp)
        with pytest.raises(RelayError) as excinfo:
            relay.relay("https://files.example/a.pdf", "a.pdf", CREDENTIALS)
        assert excinfo.value.code == UNKNOWN
        assert "530" in excinfo.value.message
        ftp.close.assert_called_once()

    def test_oversized_download(self, app_config):
        session, _ = download_session(b"a" * 1000, b"b" * 1000)
        ftp = recording_ftp()
        relay = FtpRelay(app_config, session=session, ftp_factory=lambda secure: ftp)
        with pytest.raises(RelayError) as excinfo:
            relay.relay("https://files.example/a.pdf", "a.pdf", CREDENTIALS)
        assert excinfo.value.code == UNKNOWN
        ftp.storbinary.assert_not_called()
