"""Lexical extraction of a pending mail draft from assistant text.

This is a pattern matcher, not a parser. Field markers and intent phrases are
the Japanese ones the system prompt asks the model to use; anything the model
phrases differently falls through to an empty field or a pending intent.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from mailbridge.services.draft_store import Draft, DraftStore

_DRAFT_ID_PATTERN = re.compile(r"draftId: ([a-zA-Z0-9\-_]+)")
_BODY_PATTERN = re.compile(r"本文[:：]\s*(.*?)(?:\n|$)", re.DOTALL)
_SUBJECT_PATTERN = re.compile(r"件名[:：]\s*(.+)")
_TO_PATTERN = re.compile(r"宛先[:：]\s*(.+)")
_THREAD_ID_PATTERN = re.compile(r"threadId[:：]?\s*([a-zA-Z0-9\-_]+)")

_COMPLETED_PATTERN = re.compile(r"下書きが作成|送信しました|ラベルを追加|保存しました")
_FAILED_PATTERN = re.compile(r"認証|エラー")


class Intent(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    PENDING = "pending"


@dataclass(frozen=True)
class Extraction:
    draft: Draft
    intent: Intent
    text: str


class ActionExtractor:
    def __init__(
        self,
        *,
        new_draft_id: Callable[[], str] = DraftStore.create,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._new_draft_id = new_draft_id
        self._clock = clock

    def extract(self, raw_text: str) -> Extraction:
        text = raw_text or ""
        draft_id = _first_group(_DRAFT_ID_PATTERN, text)
        if not draft_id:
            draft_id = self._new_draft_id()
            text += f"\ndraftId: {draft_id}"

        draft = Draft(
            id=draft_id,
            body=_first_group(_BODY_PATTERN, text) or "",
            subject=_first_group(_SUBJECT_PATTERN, text),
            to=_first_group(_TO_PATTERN, text),
            thread_id=_first_group(_THREAD_ID_PATTERN, text),
            created_at=self._clock(),
        )
        return Extraction(draft=draft, intent=classify_intent(text), text=text)


def classify_intent(text: str) -> Intent:
    # Completion phrases win over error phrases when both appear.
    if _COMPLETED_PATTERN.search(text or ""):
        return Intent.COMPLETED
    if _FAILED_PATTERN.search(text or ""):
        return Intent.FAILED
    return Intent.PENDING


def _first_group(pattern: re.Pattern[str], text: str) -> str | None:
    match = pattern.search(text)
    if not match:
        return None
    value = match.group(1).strip()
    return value or None
