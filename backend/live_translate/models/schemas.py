import base64
import binascii
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator


class MalformedMessageError(ValueError):
    """Inbound WebSocket frame that cannot be turned into a session message."""


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ----- Inbound session messages -----

class _LanguagePair(_CamelModel):
    source_language: Optional[str] = Field(default=None, alias="sourceLanguage")
    target_language: Optional[str] = Field(default=None, alias="targetLanguage")


class _WithAudio(_LanguagePair):
    # base64 on the wire, raw bytes once parsed
    audio: bytes = b""

    @field_validator("audio", mode="before")
    @classmethod
    def _decode_audio(cls, value):
        if value is None or value == "":
            return b""
        if not isinstance(value, str):
            raise ValueError("audio must be a base64 string")
        try:
            return base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError(f"audio is not valid base64: {exc}") from exc


class AudioMessage(_WithAudio):
    type: Literal["audio"]


class StopMessage(_WithAudio):
    type: Literal["stop"]


class ConfigMessage(_LanguagePair):
    type: Literal["config"]


class ClearMessage(_CamelModel):
    type: Literal["clear"]


InboundMessage = Annotated[
    Union[AudioMessage, ConfigMessage, StopMessage, ClearMessage],
    Field(discriminator="type"),
]

_INBOUND = TypeAdapter(InboundMessage)


def parse_message(raw: Union[str, bytes]):
    """Parse one JSON text frame into a typed inbound message.

    Raises MalformedMessageError for invalid JSON, an unknown ``type``,
    wrongly typed fields or undecodable audio.
    """
    if raw is None or (isinstance(raw, (str, bytes)) and not raw.strip()):
        raise MalformedMessageError("empty message")
    try:
        return _INBOUND.validate_json(raw)
    except ValidationError as exc:
        errors = exc.errors()
        detail = errors[0].get("msg", str(exc)) if errors else str(exc)
        raise MalformedMessageError(detail) from exc


# ----- Outbound session events -----

class ConnectedEvent(_CamelModel):
    type: Literal["connected"] = "connected"
    session_id: str = Field(alias="sessionId")


class TranscriptionEvent(_CamelModel):
    type: Literal["transcription"] = "transcription"
    source_text: str = Field(alias="sourceText")
    target_text: str = Field(alias="targetText")
    is_final: bool = Field(alias="isFinal")


class ErrorEvent(_CamelModel):
    type: Literal["error"] = "error"
    message: str


# ----- REST -----

class TranslateRequest(_CamelModel):
    text: Optional[str] = None
    source_language: Optional[str] = Field(default=None, alias="sourceLanguage")
    target_language: Optional[str] = Field(default=None, alias="targetLanguage")


class TranslateResponse(_CamelModel):
    translated_text: str = Field(alias="translatedText")
    success: bool = True


class HealthResponse(_CamelModel):
    status: str = "ok"
    mistral_configured: bool = Field(alias="mistralConfigured")
