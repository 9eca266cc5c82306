from __future__ import annotations

import re
from enum import Enum
from typing import Callable

from mailbridge.channels.base import ChatChannel
from mailbridge.errors import (
    CredentialFetchError,
    GatewayCallError,
    ModelCallError,
    UnresolvedDraftError,
)
from mailbridge.logger import bind_context, clear_context, get_logger
from mailbridge.models import InboundMessage
from mailbridge.services.action_extractor import ActionExtractor, Intent
from mailbridge.services.conversation_store import ConversationStore
from mailbridge.services.credential_cache import CredentialCache
from mailbridge.services.credential_retry import call_with_credential_retry
from mailbridge.services.draft_store import Draft, DraftStore
from mailbridge.services.prompt_builder import build_system_prompt
from mailbridge.token_security import redact_sensitive_text
from mailbridge.tools import ActionGateway, Completions, GatewayAction, ToolDescriptorFactory

logger = get_logger(__name__)

_START_KEYWORDS = re.compile(r"下書き|送信|ラベル|メール")
_CANCEL_COMMAND = re.compile(r"キャンセル")
_SAVE_COMMAND = re.compile(r"保存して")
_SEND_COMMAND = re.compile(r"送信して")
_EXPLICIT_DRAFT_ID = re.compile(r"draftId[:：]?\s*([a-zA-Z0-9\-_]+)")
_BARE_COMMAND = re.compile(
    r"^\s*(?:やっぱり|やはり)?[、,]?\s*"
    r"(?:draftId[:：]?\s*[a-zA-Z0-9\-_]+\s*を?\s*)?"
    r"(?:保存して|送信して|キャンセル(?:して)?)(?:ください)?[。！!]?\s*$"
)

GREETING = "📨 アシスタントを起動したよ！🤖"
TOKEN_ERROR = "⚠️ connect-token-server からトークン取得に失敗しました: "
MODEL_ERROR = "⚠️ OpenAI APIエラー: "
MODEL_RETRY_ERROR = "⚠️ トークン更新後もOpenAI APIエラーが発生しました: "
GATEWAY_ERROR = "⚠️ Gmail API連携エラー: "
GATEWAY_RETRY_ERROR = "⚠️ トークン更新後もGmail API連携エラーが発生しました: "
FAILED_NOTICE = "⚠️ エラーかも…トークンや権限を確認してね。"
NO_DRAFT_NOTICE = (
    "⚠️ draftIdが見つかりません。直近のメール作成後に「保存して」や「送信して」と指示してください。"
)
UNEXPECTED_ERROR = "⚠️ 予期しないエラーが発生しました。もう一度試してね。"


class DraftCommand(str, Enum):
    SAVE = "save"
    SEND = "send"
    CANCEL = "cancel"


class TurnOutcome(str, Enum):
    IGNORED = "ignored"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    FINALIZED = "finalized"
    EXECUTED = "executed"
    UNRESOLVED = "unresolved"
    FAILED = "failed"


_GATEWAY_ACTIONS = {
    DraftCommand.SAVE: GatewayAction.CREATE_DRAFT,
    DraftCommand.SEND: GatewayAction.SEND_EMAIL,
}


class ConversationOrchestrator:
    """Runs one chat turn: model proposal, draft bookkeeping and confirmed actions.

    A turn either asks the model (new request or continuation) or, when the
    user answers an open conversation with nothing but a save/send/cancel
    command, acts on an already pending draft without asking the model again.
    A command mixed with further instructions goes to the model first and is
    then applied to the revised draft.
    """

    def __init__(
        self,
        *,
        credentials: CredentialCache,
        conversations: ConversationStore,
        drafts: DraftStore,
        extractor: ActionExtractor,
        tool_factory: ToolDescriptorFactory,
        completions: Completions,
        gateway: ActionGateway,
        system_prompt: Callable[[str], str] = build_system_prompt,
    ) -> None:
        self.credentials = credentials
        self.conversations = conversations
        self.drafts = drafts
        self.extractor = extractor
        self.tool_factory = tool_factory
        self.completions = completions
        self.gateway = gateway
        self._system_prompt = system_prompt

    def handle_message(self, message: InboundMessage, channel: ChatChannel) -> TurnOutcome:
        user = (message.user or "").strip()
        if not user or message.is_from_bot():
            return TurnOutcome.IGNORED
        bind_context(user=user)
        try:
            outcome = self._handle_turn(user=user, text=message.text, channel=channel)
            logger.info("turn_finished", outcome=outcome.value)
            return outcome
        except Exception:
            logger.exception("turn_crashed")
            try:
                channel.send(UNEXPECTED_ERROR)
            except Exception:
                logger.exception("reply_failed")
            return TurnOutcome.FAILED
        finally:
            clear_context()

    def _handle_turn(self, *, user: str, text: str, channel: ChatChannel) -> TurnOutcome:
        command = detect_command(text)
        continuing = self.conversations.has_history(user)
        if command is not None and is_bare_command(text):
            if continuing or extract_explicit_draft_id(text) is not None:
                return self._run_command(user=user, text=text, command=command, channel=channel)

        # "edit, then send" stays in the open session so the model revises the pending draft.
        confirm = command if command in _GATEWAY_ACTIONS and continuing else None
        if confirm is None and self._is_start(user=user, text=text):
            self._reply(channel, GREETING)
            self.conversations.set(user, [self._system_prompt(text)])
        else:
            self.conversations.append(user, f"\n---\n{text}\n---")

        output_text = self._ask_model(user=user, channel=channel)
        if output_text is None:
            return TurnOutcome.FAILED

        extraction = self.extractor.extract(output_text)
        self.drafts.save(user, extraction.draft.id, extraction.draft)
        logger.info(
            "draft_extracted",
            draft_id=extraction.draft.id,
            intent=extraction.intent.value,
        )

        if extraction.intent is Intent.COMPLETED:
            self._reply(
                channel,
                "✅ Gmail 操作を完了したよ！\n\n"
                + extraction.text
                + "\n\n💬 必要なら書き続けて指示してね。",
            )
            self.conversations.clear(user)
            return TurnOutcome.FINALIZED
        if extraction.intent is Intent.FAILED:
            self._reply(channel, FAILED_NOTICE)
            self.conversations.clear(user)
            return TurnOutcome.FAILED

        if confirm is not None:
            self._reply(channel, "📝 " + extraction.text)
            return self._run_command(user=user, text=text, command=confirm, channel=channel)

        self._reply(
            channel,
            "📝 "
            + extraction.text
            + "\n\n問題なければ「送信して」「保存して」など返信してね。"
            "やめる場合は「キャンセル」と返信してね。",
        )
        return TurnOutcome.AWAITING_CONFIRMATION

    def _is_start(self, *, user: str, text: str) -> bool:
        return bool(_START_KEYWORDS.search(text)) or not self.conversations.has_history(user)

    def _ask_model(self, *, user: str, channel: ChatChannel) -> str | None:
        input_text = "\n".join(self.conversations.get(user))
        attempts = 0

        def _complete(token: str) -> str:
            nonlocal attempts
            attempts += 1
            tools = self.tool_factory.build_all(token)
            return self.completions.complete(input_text=input_text, tools=tools)

        try:
            return call_with_credential_retry(self.credentials, _complete, label="model")
        except CredentialFetchError as exc:
            logger.error("credential_unavailable", error=str(exc))
            self._reply(channel, TOKEN_ERROR + str(exc))
        except ModelCallError as exc:
            logger.error("model_call_failed", attempts=attempts, error=str(exc))
            prefix = MODEL_RETRY_ERROR if attempts > 1 else MODEL_ERROR
            self._reply(channel, prefix + str(exc))
        return None

    def _run_command(
        self,
        *,
        user: str,
        text: str,
        command: DraftCommand,
        channel: ChatChannel,
    ) -> TurnOutcome:
        try:
            draft = self.resolve_draft(user=user, text=text)
        except UnresolvedDraftError as exc:
            logger.info("draft_unresolved", command=command.value, draft_id=exc.draft_id)
            self._reply(channel, NO_DRAFT_NOTICE)
            return TurnOutcome.UNRESOLVED

        if command is DraftCommand.CANCEL:
            self.drafts.delete(user, draft.id)
            self._reply(channel, f"🗑️ 下書きを破棄しました（draftId: {draft.id}）")
            return TurnOutcome.EXECUTED

        action = _GATEWAY_ACTIONS[command]
        attempts = 0

        def _execute(token: str) -> dict[str, object]:
            nonlocal attempts
            attempts += 1
            return self.gateway.execute(action=action, token=token, draft=draft)

        try:
            call_with_credential_retry(self.credentials, _execute, label=action.value)
        except CredentialFetchError as exc:
            logger.error("credential_unavailable", error=str(exc))
            self._reply(channel, TOKEN_ERROR + str(exc))
            return TurnOutcome.FAILED
        except GatewayCallError as exc:
            logger.error(
                "gateway_call_failed",
                action=action.value,
                draft_id=draft.id,
                attempts=attempts,
                status_code=exc.status_code,
                error=str(exc),
            )
            prefix = GATEWAY_RETRY_ERROR if attempts > 1 else GATEWAY_ERROR
            self._reply(channel, prefix + str(exc))
            return TurnOutcome.FAILED

        self.drafts.delete(user, draft.id)
        if command is DraftCommand.SAVE:
            self._reply(channel, f"✅ 下書きを保存しました（draftId: {draft.id}）")
        else:
            self._reply(channel, f"✅ メールを送信しました（draftId: {draft.id}）")
        return TurnOutcome.EXECUTED

    def resolve_draft(self, *, user: str, text: str) -> Draft:
        draft_id = extract_explicit_draft_id(text) or self.drafts.latest(user)
        draft = self.drafts.get(user, draft_id) if draft_id else None
        if draft is None:
            raise UnresolvedDraftError(draft_id)
        return draft

    @staticmethod
    def _reply(channel: ChatChannel, text: str) -> None:
        channel.send(redact_sensitive_text(text))


def detect_command(text: str) -> DraftCommand | None:
    if _CANCEL_COMMAND.search(text or ""):
        return DraftCommand.CANCEL
    if _SAVE_COMMAND.search(text or ""):
        return DraftCommand.SAVE
    if _SEND_COMMAND.search(text or ""):
        return DraftCommand.SEND
    return None


def is_bare_command(text: str) -> bool:
    """True when the message is only a save/send/cancel instruction."""
    return bool(_BARE_COMMAND.match(text or ""))


def extract_explicit_draft_id(text: str) -> str | None:
    match = _EXPLICIT_DRAFT_ID.search(text or "")
    if not match:
        return None
    return match.group(1)
