from __future__ import annotations

import threading
from collections.abc import Iterable


class ConversationStore:
    """Per-user conversation lines sent to the model, kept for the process lifetime."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._history_by_user: dict[str, list[str]] = {}

    def get(self, user: str) -> list[str]:
        with self._lock:
            return list(self._history_by_user.get(user, []))

    def set(self, user: str, lines: Iterable[str]) -> None:
        with self._lock:
            self._history_by_user[user] = list(lines)

    def append(self, user: str, line: str) -> None:
        with self._lock:
            self._history_by_user.setdefault(user, []).append(line)

    def clear(self, user: str) -> None:
        with self._lock:
            self._history_by_user.pop(user, None)

    def has_history(self, user: str) -> bool:
        with self._lock:
            return bool(self._history_by_user.get(user))
