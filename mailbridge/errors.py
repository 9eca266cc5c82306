class MailBridgeError(Exception):
    """Base class for failures the assistant reports back to the user."""


class CredentialFetchError(MailBridgeError):
    """The connect-token issuer was unreachable or returned a bad payload."""


class AuthExpiredError(MailBridgeError):
    """Marker for failures that a fresh connect token may fix."""


class ModelCallError(MailBridgeError):
    pass


class ModelAuthExpiredError(ModelCallError, AuthExpiredError):
    pass


class GatewayCallError(MailBridgeError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GatewayAuthExpiredError(GatewayCallError, AuthExpiredError):
    pass


class UnresolvedDraftError(MailBridgeError):
    def __init__(self, draft_id: str | None = None) -> None:
        target = f"draftId {draft_id}" if draft_id else "a pending draft"
        super().__init__(f"Could not find {target}.")
        self.draft_id = draft_id


class UnsupportedToolError(MailBridgeError, ValueError):
    pass
