from .action_extractor import ActionExtractor, Extraction, Intent
from .conversation_store import ConversationStore
from .credential_cache import Credential, CredentialCache
from .draft_store import Draft, DraftStore

__all__ = [
    "ActionExtractor",
    "Extraction",
    "Intent",
    "ConversationStore",
    "Credential",
    "CredentialCache",
    "Draft",
    "DraftStore",
    "ConversationOrchestrator",
    "TurnOutcome",
]


def __getattr__(name: str):
    if name in {"ConversationOrchestrator", "TurnOutcome"}:
        from .orchestrator import ConversationOrchestrator, TurnOutcome

        return {
            "ConversationOrchestrator": ConversationOrchestrator,
            "TurnOutcome": TurnOutcome,
        }[name]
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
