from pydantic import BaseModel, ConfigDict, Field, field_validator


class InboundMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user: str | None = None
    text: str = ""
    subtype: str | None = None
    channel: str | None = None
    ts: str | None = None
    bot_id: str | None = None

    @field_validator("text", mode="before")
    @classmethod
    def _none_text_is_empty(cls, value: object) -> object:
        return "" if value is None else value

    def is_from_bot(self) -> bool:
        return self.subtype == "bot_message" or bool(self.bot_id)


class ConnectTokenPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    token: str = Field(min_length=1)
    expires_in: int | None = None


class HealthResponse(BaseModel):
    status: str = "ok"
    slack_configured: bool
    missing_settings: list[str] = Field(default_factory=list)
