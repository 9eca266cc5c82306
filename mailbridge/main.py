from __future__ import annotations

from fastapi import FastAPI, HTTPException, Request
from slack_bolt.adapter.fastapi import SlackRequestHandler

from mailbridge.channels.slack import build_slack_app, start_socket_mode
from mailbridge.config import Settings, settings
from mailbridge.logger import get_logger
from mailbridge.models import HealthResponse
from mailbridge.services.action_extractor import ActionExtractor
from mailbridge.services.action_gateway import PipedreamActionGateway
from mailbridge.services.conversation_store import ConversationStore
from mailbridge.services.credential_cache import CredentialCache
from mailbridge.services.draft_store import DraftStore
from mailbridge.services.llm_client import OpenAIResponsesClient, OpenAIResponsesConfig
from mailbridge.services.orchestrator import ConversationOrchestrator
from mailbridge.tools import GatewayIdentity, ToolDescriptorFactory

logger = get_logger(__name__)


def _build_orchestrator(cfg: Settings) -> ConversationOrchestrator | None:
    missing = cfg.missing_required()
    if missing:
        logger.warning("orchestrator_disabled", missing_settings=missing)
        return None
    identity = GatewayIdentity(
        project_id=cfg.pipedream_project_id or "",
        environment=cfg.pipedream_environment or "",
        external_user_id=cfg.pipedream_external_user_id or "",
    )
    drafts = DraftStore()
    return ConversationOrchestrator(
        credentials=CredentialCache(
            cfg.connect_token_url,
            timeout_seconds=cfg.connect_token_timeout_seconds,
            default_expires_in=cfg.connect_token_default_expires_in,
        ),
        conversations=ConversationStore(),
        drafts=drafts,
        extractor=ActionExtractor(new_draft_id=drafts.create),
        tool_factory=ToolDescriptorFactory(identity),
        completions=OpenAIResponsesClient(
            OpenAIResponsesConfig(
                model=cfg.openai_model,
                api_key=cfg.openai_api_key or "",
                api_base_url=cfg.openai_api_base_url,
                timeout_seconds=cfg.openai_timeout_seconds,
            )
        ),
        gateway=PipedreamActionGateway(
            identity=identity,
            base_url=cfg.pipedream_gateway_base_url,
            timeout_seconds=cfg.pipedream_timeout_seconds,
        ),
    )


def _build_slack_handler(
    cfg: Settings, orchestrator: ConversationOrchestrator | None
) -> SlackRequestHandler | None:
    if orchestrator is None or not cfg.slack_configured():
        return None
    slack_app = build_slack_app(
        bot_token=cfg.slack_bot_token or "",
        signing_secret=cfg.slack_signing_secret,
        orchestrator=orchestrator,
    )
    return SlackRequestHandler(slack_app)


def create_app(cfg: Settings) -> FastAPI:
    api = FastAPI(title="mailbridge", version="0.1.0")
    orchestrator = _build_orchestrator(cfg)
    slack_handler = _build_slack_handler(cfg, orchestrator)
    logger.info(
        "service_configured",
        env=cfg.env,
        connect_token_url=cfg.connect_token_url,
        slack_enabled=slack_handler is not None,
    )

    @api.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(
            slack_configured=slack_handler is not None,
            missing_settings=cfg.missing_required(),
        )

    @api.post("/slack/events")
    async def slack_events(request: Request):
        if slack_handler is None:
            raise HTTPException(
                status_code=503,
                detail=(
                    "Slack assistant is not configured. Set SLACK_BOT_TOKEN, "
                    "SLACK_SIGNING_SECRET, OPENAI_API_KEY and the PIPEDREAM_* identifiers."
                ),
            )
        return await slack_handler.handle(request)

    return api


def run_socket_mode(cfg: Settings) -> None:
    orchestrator = _build_orchestrator(cfg)
    if orchestrator is None or not cfg.socket_mode_configured():
        raise SystemExit(
            "Socket Mode needs SLACK_BOT_TOKEN, SLACK_APP_TOKEN, OPENAI_API_KEY "
            "and the PIPEDREAM_* identifiers."
        )
    slack_app = build_slack_app(
        bot_token=cfg.slack_bot_token or "",
        signing_secret=cfg.slack_signing_secret,
        orchestrator=orchestrator,
    )
    start_socket_mode(slack_app, cfg.slack_app_token or "")


app = create_app(settings)


if __name__ == "__main__":
    run_socket_mode(settings)
