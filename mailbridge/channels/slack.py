from __future__ import annotations

from typing import Any, Callable

from slack_bolt import App
from slack_bolt.adapter.socket_mode import SocketModeHandler

from mailbridge.logger import get_logger
from mailbridge.models import InboundMessage
from mailbridge.services.orchestrator import ConversationOrchestrator

from .base import ChatChannel

logger = get_logger(__name__)


class SaySlackChannel(ChatChannel):
    """Posts replies through the ``say`` helper bolt hands to a listener."""

    def __init__(self, say: Callable[..., Any]) -> None:
        self._say = say

    def send(self, text: str) -> None:
        self._say(text=text)


def register_message_listener(app: App, orchestrator: ConversationOrchestrator) -> None:
    @app.event("message")
    def _on_message(event: dict[str, Any], say: Callable[..., Any]) -> None:
        message = InboundMessage.model_validate(event)
        logger.debug(
            "slack_message_received",
            user=message.user,
            channel=message.channel,
            subtype=message.subtype,
        )
        orchestrator.handle_message(message, SaySlackChannel(say))


def build_slack_app(
    *,
    bot_token: str,
    signing_secret: str | None,
    orchestrator: ConversationOrchestrator,
) -> App:
    # Socket Mode requests skip signature checks, so the secret is only needed over HTTP.
    app = App(
        token=bot_token,
        signing_secret=signing_secret or "",
        token_verification_enabled=False,
    )
    register_message_listener(app, orchestrator)
    return app


def start_socket_mode(app: App, app_token: str) -> None:
    """Receive events over a Socket Mode websocket; blocks until interrupted."""
    logger.info("slack_socket_mode_starting")
    SocketModeHandler(app, app_token).start()
