from __future__ import annotations

import re


_BEARER_PATTERN = re.compile(r"(?i)\bbearer\s+[a-z0-9\-._~+/]+=*")
_TOKEN_FIELD_PATTERN = re.compile(
    r"""(?i)(["']?\b(?:access_|refresh_|connect_)?token["']?\s*[:=]\s*)["']?[a-z0-9\-._~+/]+=*["']?"""
)


def redact_sensitive_text(value: str | None) -> str:
    if not value:
        return ""
    out = _BEARER_PATTERN.sub("Bearer ***", value)
    out = _TOKEN_FIELD_PATTERN.sub(r'\1"***"', out)
    return out
