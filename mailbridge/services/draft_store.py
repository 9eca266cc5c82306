from __future__ import annotations

import threading
from dataclasses import dataclass
from uuid import uuid4


@dataclass(frozen=True)
class Draft:
    id: str
    body: str = ""
    to: str | None = None
    subject: str | None = None
    thread_id: str | None = None
    created_at: float = 0.0

    def to_action_payload(self) -> dict[str, str | None]:
        return {
            "to": self.to,
            "subject": self.subject,
            "body": self.body,
            "threadId": self.thread_id,
        }


class DraftStore:
    """Pending drafts per user, keyed by draft id.

    Drafts never expire; they leave the store only through ``delete``.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._drafts_by_user: dict[str, dict[str, Draft]] = {}

    @staticmethod
    def create() -> str:
        return f"draft-{uuid4().hex[:9]}"

    def save(self, user: str, draft_id: str, draft: Draft) -> None:
        with self._lock:
            drafts = self._drafts_by_user.setdefault(user, {})
            # Re-saving moves the id to the end so ties in latest() favor the newest save.
            drafts.pop(draft_id, None)
            drafts[draft_id] = draft

    def get(self, user: str, draft_id: str) -> Draft | None:
        with self._lock:
            return self._drafts_by_user.get(user, {}).get(draft_id)

    def list(self, user: str) -> dict[str, Draft]:
        with self._lock:
            return dict(self._drafts_by_user.get(user, {}))

    def delete(self, user: str, draft_id: str) -> bool:
        with self._lock:
            drafts = self._drafts_by_user.get(user)
            if not drafts or draft_id not in drafts:
                return False
            del drafts[draft_id]
            if not drafts:
                del self._drafts_by_user[user]
            return True

    def latest(self, user: str) -> str | None:
        with self._lock:
            latest_id: str | None = None
            latest_at = 0.0
            for draft_id, draft in self._drafts_by_user.get(user, {}).items():
                if latest_id is None or draft.created_at >= latest_at:
                    latest_id = draft_id
                    latest_at = draft.created_at
            return latest_id
