"""Relay a remote file to an FTP server.

The relay downloads a blob over HTTP into a temporary file and re-uploads it
to the FTP server named in the request. Failures are reported as
:class:`RelayError` with one of three codes.
"""
from __future__ import annotations

import ftplib
import hmac
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Callable, Optional

import requests

from .config import AppConfig
from .schemas import FtpCredentials

logger = logging.getLogger(__name__)

UNAUTHENTICATED = "unauthenticated"
INVALID_ARGUMENT = "invalid-argument"
UNKNOWN = "unknown"


class RelayError(Exception):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


@dataclass(slots=True)
class RelayResult:
    success: bool
    message: str
    path: str


class FtpRelay:
    """Pipe a file from a URL to an FTP server."""

    def __init__(
        self,
        config: AppConfig,
        session: Optional[requests.Session] = None,
        ftp_factory: Optional[Callable[[bool], ftplib.FTP]] = None,
    ) -> None:
        self._config = config
        self._session = session or requests.Session()
        self._ftp_factory = ftp_factory or _default_ftp_factory

    def authenticate(self, token: Optional[str]) -> None:
        expected = self._config.api_token
        if not expected or not token or not hmac.compare_digest(token, expected):
            raise RelayError(UNAUTHENTICATED, "User must be authenticated")

    def relay(
        self,
        file_url: Optional[str],
        remote_path: Optional[str],
        credentials: Optional[FtpCredentials],
    ) -> RelayResult:
        if not file_url or not remote_path or credentials is None:
            raise RelayError(INVALID_ARGUMENT, "Missing required parameters")

        handle, temp_path = tempfile.mkstemp(suffix=PurePosixPath(remote_path).name)
        os.close(handle)
        try:
            self._download(file_url, temp_path)
            self._upload(temp_path, remote_path, credentials)
        except RelayError:
            raise
        except (requests.RequestException, *ftplib.all_errors) as exc:
            logger.error("FTP relay of %s to %s failed: %s", file_url, remote_path, exc)
            raise RelayError(UNKNOWN, str(exc) or "Unknown error occurred") from exc
        finally:
            os.unlink(temp_path)

        logger.info("Relayed %s to ftp://%s/%s", file_url, credentials.host, remote_path)
        return RelayResult(
            success=True,
            message="File uploaded successfully to FTP server",
            path=remote_path,
        )

    def _download(self, file_url: str, destination: str) -> None:
        received = 0
        with self._session.get(file_url, stream=True, timeout=30) as response:
            response.raise_for_status()
            with open(destination, "wb") as handle:
                for chunk in response.iter_content(chunk_size=64 * 1024):
                    received += len(chunk)
                    if received > self._config.relay_max_bytes:
                        raise RelayError(
                            UNKNOWN,
                            f"File exceeds the {self._config.relay_max_bytes} byte relay limit",
                        )
                    handle.write(chunk)

    def _upload(self, source: str, remote_path: str, credentials: FtpCredentials) -> None:
        ftp = self._ftp_factory(credentials.secure)
        try:
            ftp.connect(credentials.host, credentials.port or 21, timeout=30)
            ftp.login(credentials.user, credentials.password)
            if isinstance(ftp, ftplib.FTP_TLS):
                ftp.prot_p()
            with open(source, "rb") as handle:
                ftp.storbinary(f"STOR {remote_path}", handle)
        finally:
            ftp.close()


def _default_ftp_factory(secure: bool) -> ftplib.FTP:
    return ftplib.FTP_TLS() if secure else ftplib.FTP()
