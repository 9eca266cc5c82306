import os
from dataclasses import dataclass

from dotenv import load_dotenv

ENV_NAME = os.getenv("ENV", "personal").strip() or "personal"

load_dotenv(f".env.{ENV_NAME}", override=False)
load_dotenv(override=False)


def _as_int(raw: str | None, default: int) -> int:
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _as_str(raw: str | None) -> str | None:
    value = (raw or "").strip()
    return value or None


@dataclass(frozen=True)
class Settings:
    env: str
    connect_token_url: str
    connect_token_timeout_seconds: int
    connect_token_default_expires_in: int
    openai_api_key: str | None
    openai_model: str
    openai_api_base_url: str | None
    openai_timeout_seconds: int
    pipedream_project_id: str | None
    pipedream_environment: str | None
    pipedream_external_user_id: str | None
    pipedream_gateway_base_url: str
    pipedream_timeout_seconds: int
    slack_bot_token: str | None
    slack_signing_secret: str | None
    slack_app_token: str | None
    log_level: str

    def missing_required(self) -> list[str]:
        required = {
            "OPENAI_API_KEY": self.openai_api_key,
            "PIPEDREAM_PROJECT_ID": self.pipedream_project_id,
            "PIPEDREAM_ENVIRONMENT": self.pipedream_environment,
            "PIPEDREAM_EXTERNAL_USER_ID": self.pipedream_external_user_id,
        }
        return [name for name, value in required.items() if not value]

    def slack_configured(self) -> bool:
        return bool(self.slack_bot_token and self.slack_signing_secret)

    def socket_mode_configured(self) -> bool:
        return bool(self.slack_bot_token and self.slack_app_token)


def load_settings() -> Settings:
    return Settings(
        env=ENV_NAME,
        connect_token_url=os.getenv(
            "CONNECT_TOKEN_URL", "http://localhost:3001/connect-token"
        ),
        connect_token_timeout_seconds=_as_int(
            os.getenv("CONNECT_TOKEN_TIMEOUT_SECONDS"), 8
        ),
        connect_token_default_expires_in=max(
            1, _as_int(os.getenv("CONNECT_TOKEN_DEFAULT_EXPIRES_IN"), 1800)
        ),
        openai_api_key=_as_str(os.getenv("OPENAI_API_KEY")),
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4.1").strip() or "gpt-4.1",
        openai_api_base_url=_as_str(os.getenv("OPENAI_API_BASE_URL")),
        openai_timeout_seconds=_as_int(os.getenv("OPENAI_TIMEOUT_SECONDS"), 60),
        pipedream_project_id=_as_str(os.getenv("PIPEDREAM_PROJECT_ID")),
        pipedream_environment=_as_str(os.getenv("PIPEDREAM_ENVIRONMENT")),
        pipedream_external_user_id=_as_str(os.getenv("PIPEDREAM_EXTERNAL_USER_ID")),
        pipedream_gateway_base_url=os.getenv(
            "PIPEDREAM_GATEWAY_BASE_URL", "https://remote.mcp.pipedream.net"
        ).rstrip("/"),
        pipedream_timeout_seconds=_as_int(os.getenv("PIPEDREAM_TIMEOUT_SECONDS"), 30),
        slack_bot_token=_as_str(os.getenv("SLACK_BOT_TOKEN")),
        slack_signing_secret=_as_str(os.getenv("SLACK_SIGNING_SECRET")),
        slack_app_token=_as_str(os.getenv("SLACK_APP_TOKEN")),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )


settings = load_settings()
