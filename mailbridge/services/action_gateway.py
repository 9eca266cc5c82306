from __future__ import annotations

import requests

from mailbridge.errors import GatewayAuthExpiredError, GatewayCallError
from mailbridge.logger import get_logger
from mailbridge.services.draft_store import Draft
from mailbridge.tools.base import ActionGateway, GatewayAction, GatewayIdentity

logger = get_logger(__name__)


class PipedreamActionGateway(ActionGateway):
    """Runs Gmail actions through the Pipedream Connect action endpoints."""

    APP_SLUG = "gmail"

    def __init__(
        self,
        *,
        identity: GatewayIdentity,
        base_url: str = "https://remote.mcp.pipedream.net",
        timeout_seconds: int = 30,
    ) -> None:
        self._identity = identity
        self._base_url = (base_url or "").strip().rstrip("/")
        if not self._base_url:
            raise RuntimeError("PIPEDREAM_GATEWAY_BASE_URL is required.")
        self._timeout_seconds = max(1, timeout_seconds)

    def execute(self, *, action: GatewayAction, token: str, draft: Draft) -> dict[str, object]:
        url = self._url(action)
        headers = {
            **self._identity.auth_headers(token, self.APP_SLUG),
            "Content-Type": "application/json",
        }
        logger.info("gateway_call_started", action=action.value, draft_id=draft.id)
        try:
            response = requests.post(
                url,
                headers=headers,
                json=draft.to_action_payload(),
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as exc:
            raise GatewayCallError(f"Gmail action {action.value} failed: {exc}") from exc
        if not response.ok:
            message = (
                f"Gmail action {action.value} failed "
                f"({response.status_code}): {self._error_message(response)}"
            )
            if response.status_code == 401:
                raise GatewayAuthExpiredError(message, status_code=response.status_code)
            raise GatewayCallError(message, status_code=response.status_code)
        logger.info("gateway_call_succeeded", action=action.value, draft_id=draft.id)
        try:
            parsed = response.json()
        except ValueError:
            return {}
        return parsed if isinstance(parsed, dict) else {"result": parsed}

    def _url(self, action: GatewayAction) -> str:
        return f"{self._base_url}/actions/{self.APP_SLUG}/{action.value}"

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        text = response.text.strip()
        if not text:
            return "request failed"
        return text[:500]
