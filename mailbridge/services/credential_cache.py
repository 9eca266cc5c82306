from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable

import requests
from pydantic import ValidationError

from mailbridge.errors import CredentialFetchError
from mailbridge.logger import get_logger
from mailbridge.models import ConnectTokenPayload

logger = get_logger(__name__)


@dataclass(frozen=True)
class Credential:
    token: str
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return bool(self.token) and now < self.expires_at


class CredentialCache:
    """Process-wide connect token, fetched at most once at a time.

    The lock covers the whole check, fetch and store sequence so that callers
    that all observe an expired token wait for a single issuer request and then
    share its result.
    """

    def __init__(
        self,
        issuer_url: str,
        *,
        timeout_seconds: int = 8,
        default_expires_in: int = 1800,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.issuer_url = (issuer_url or "").strip()
        if not self.issuer_url:
            raise ValueError("CONNECT_TOKEN_URL is required.")
        self.timeout_seconds = max(1, timeout_seconds)
        self.default_expires_in = max(1, default_expires_in)
        self._clock = clock
        self._lock = threading.Lock()
        self._credential: Credential | None = None

    def get_token(self) -> str:
        with self._lock:
            now = self._clock()
            cached = self._credential
            if cached is not None and cached.is_valid(now):
                return cached.token
            if cached is not None:
                logger.info("credential_expired", expires_at=cached.expires_at)
                self._credential = None
            try:
                credential = self._fetch(now)
            except CredentialFetchError:
                self._credential = None
                raise
            self._credential = credential
            logger.info("credential_fetched", expires_at=credential.expires_at)
            return credential.token

    def invalidate(self) -> None:
        with self._lock:
            self._credential = None

    def _fetch(self, now: float) -> Credential:
        try:
            response = requests.get(self.issuer_url, timeout=self.timeout_seconds)
        except requests.RequestException as exc:
            logger.error("credential_fetch_failed", url=self.issuer_url, error=str(exc))
            raise CredentialFetchError(f"connect-token request failed: {exc}") from exc
        if not response.ok:
            detail = response.text.strip()[:300] or "request failed"
            logger.error(
                "credential_fetch_failed",
                url=self.issuer_url,
                status_code=response.status_code,
                detail=detail,
            )
            raise CredentialFetchError(
                f"connect-token request failed ({response.status_code}): {detail}"
            )
        try:
            payload = ConnectTokenPayload.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.error("credential_payload_invalid", url=self.issuer_url)
            raise CredentialFetchError("connect-token response is malformed.") from exc
        expires_in = payload.expires_in or self.default_expires_in
        return Credential(token=payload.token, expires_at=now + expires_in)
