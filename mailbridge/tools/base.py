from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum

from mailbridge.services.draft_store import Draft


@dataclass(frozen=True)
class GatewayIdentity:
    project_id: str
    environment: str
    external_user_id: str

    def auth_headers(self, token: str, app_slug: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "x-pd-project-id": self.project_id,
            "x-pd-environment": self.environment,
            "x-pd-external-user-id": self.external_user_id,
            "x-pd-app-slug": app_slug,
        }


@dataclass(frozen=True)
class ToolDescriptor:
    kind: str
    server_url: str
    server_label: str
    headers: dict[str, str] = field(repr=False)
    require_approval: str = "never"

    def to_payload(self) -> dict[str, object]:
        return {
            "type": "mcp",
            "server_url": self.server_url,
            "server_label": self.server_label,
            "headers": dict(self.headers),
            "require_approval": self.require_approval,
        }


class GatewayAction(str, Enum):
    CREATE_DRAFT = "create_draft"
    SEND_EMAIL = "send_email"


class Completions(ABC):
    @abstractmethod
    def complete(self, *, input_text: str, tools: list[ToolDescriptor]) -> str:
        raise NotImplementedError


class ActionGateway(ABC):
    @abstractmethod
    def execute(self, *, action: GatewayAction, token: str, draft: Draft) -> dict[str, object]:
        raise NotImplementedError
