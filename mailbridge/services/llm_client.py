from __future__ import annotations

from dataclasses import dataclass

import requests

from mailbridge.errors import ModelAuthExpiredError, ModelCallError
from mailbridge.tools.base import Completions, ToolDescriptor


@dataclass(frozen=True)
class OpenAIResponsesConfig:
    model: str
    api_key: str
    timeout_seconds: int
    api_base_url: str | None = None


class OpenAIResponsesClient(Completions):
    def __init__(self, cfg: OpenAIResponsesConfig) -> None:
        api_key = (cfg.api_key or "").strip()
        if not api_key:
            raise RuntimeError("OPENAI_API_KEY is required.")
        self._model = (cfg.model or "").strip()
        if not self._model:
            raise RuntimeError("OPENAI_MODEL is required.")
        self._api_key = api_key
        self._timeout_seconds = max(1, int(cfg.timeout_seconds))
        base = (cfg.api_base_url or "").strip() or "https://api.openai.com/v1"
        self._base_url = base.rstrip("/")

    def complete(self, *, input_text: str, tools: list[ToolDescriptor]) -> str:
        payload = {
            "model": self._model,
            "input": input_text,
            "tools": [tool.to_payload() for tool in tools],
        }
        try:
            response = requests.post(
                f"{self._base_url}/responses",
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as exc:
            raise ModelCallError(f"OpenAI request failed: {exc}") from exc
        if not response.ok:
            detail = response.text.strip()[:400] or "request failed"
            message = f"OpenAI response failed ({response.status_code}): {detail}"
            if _is_auth_expired(response.status_code, detail):
                raise ModelAuthExpiredError(message)
            raise ModelCallError(message)
        try:
            body = response.json()
        except ValueError as exc:
            raise ModelCallError("OpenAI response returned invalid JSON.") from exc
        if not isinstance(body, dict):
            raise ModelCallError("OpenAI response returned unexpected payload.")
        return extract_output_text(body)


def extract_output_text(body: dict[str, object]) -> str:
    direct = body.get("output_text")
    if isinstance(direct, str):
        return direct.strip()
    output = body.get("output")
    if not isinstance(output, list):
        raise ModelCallError("OpenAI response missing output.")
    chunks: list[str] = []
    for item in output:
        if not isinstance(item, dict) or item.get("type") != "message":
            continue
        content = item.get("content")
        if not isinstance(content, list):
            continue
        for part in content:
            if not isinstance(part, dict) or part.get("type") != "output_text":
                continue
            text = part.get("text")
            if isinstance(text, str):
                chunks.append(text)
    return "".join(chunks).strip()


def _is_auth_expired(status_code: int, detail: str) -> bool:
    # Tool servers rejecting the connect token surface as a 401 quoted in the error body.
    if status_code == 401:
        return True
    return "401" in detail and "invalid" in detail.lower()
