from __future__ import annotations

from dataclasses import dataclass

from mailbridge.errors import UnsupportedToolError

from .base import GatewayIdentity, ToolDescriptor


@dataclass(frozen=True)
class _McpServer:
    label: str
    app_slug: str


_MCP_SERVERS: dict[str, _McpServer] = {
    "gmail": _McpServer(label="Gmail", app_slug="gmail"),
    "calendar": _McpServer(label="Google_Calendar", app_slug="google_calendar"),
}


class ToolDescriptorFactory:
    """Builds the MCP tool list handed to the model for one call."""

    DEFAULT_SERVER_URL = "https://remote.mcp.pipedream.net"

    def __init__(self, identity: GatewayIdentity, server_url: str | None = None) -> None:
        self._identity = identity
        self._server_url = (server_url or self.DEFAULT_SERVER_URL).rstrip("/")

    def supported_kinds(self) -> list[str]:
        return list(_MCP_SERVERS)

    def build(self, kind: str, token: str) -> ToolDescriptor:
        try:
            server = _MCP_SERVERS[kind]
        except KeyError as exc:
            raise UnsupportedToolError(f"Unsupported MCP tool: {kind}") from exc
        return ToolDescriptor(
            kind=kind,
            server_url=self._server_url,
            server_label=server.label,
            headers=self._identity.auth_headers(token, server.app_slug),
        )

    def build_all(self, token: str) -> list[ToolDescriptor]:
        return [self.build(kind, token) for kind in self.supported_kinds()]
