from __future__ import annotations

from typing import Callable, TypeVar

from mailbridge.errors import AuthExpiredError
from mailbridge.logger import get_logger
from mailbridge.services.credential_cache import CredentialCache

logger = get_logger(__name__)

T = TypeVar("T")


def call_with_credential_retry(
    credentials: CredentialCache,
    operation: Callable[[str], T],
    *,
    label: str,
) -> T:
    """Run ``operation`` with the cached token, refreshing and retrying once on auth expiry.

    A second auth failure, or any other error, propagates to the caller.
    """
    token = credentials.get_token()
    try:
        return operation(token)
    except AuthExpiredError as exc:
        logger.warning("credential_rejected_retrying", call=label, error=str(exc))
        credentials.invalidate()
        token = credentials.get_token()
        return operation(token)
