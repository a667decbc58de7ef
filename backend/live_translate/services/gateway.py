import logging
from typing import Optional, Protocol

from .asr_mistral import GatewayError, MistralASR, TranscriptionError
from .translate_mistral import MistralTranslate, TranslationError

__all__ = [
    "Gateway",
    "GatewayError",
    "MistralGateway",
    "TranscriptionError",
    "TranslationError",
    "build_gateway",
]


def _mask(s: Optional[str]) -> str:
    if not s:
        return ""
    if len(s) <= 5:
        return "***"
    return s[:3] + "***" + s[-2:]


class Gateway(Protocol):
    def transcribe(self, audio_bytes: bytes, language: str) -> str: ...

    def translate(self, text: str, source: str, target: str) -> str: ...


class MistralGateway:
    """Speech-to-text plus translation backed by the Mistral API.

    Stateless; one instance is shared by every session. Both calls block on
    HTTP and are meant to be run off the event loop.
    """

    def __init__(self, asr: MistralASR, translator: MistralTranslate):
        self.logger = logging.getLogger("live_translate")
        self.asr = asr
        self.translator = translator
        self.logger.info(
            "gateway.config asr_model=%s translate_model=%s api_key=%s",
            asr.model,
            translator.model,
            _mask(asr.api_key),
        )

    @property
    def configured(self) -> bool:
        return bool(self.asr.api_key)

    def transcribe(self, audio_bytes: bytes, language: str) -> str:
        return self.asr.transcribe(audio_bytes, language)

    def translate(self, text: str, source: str, target: str) -> str:
        return self.translator.translate(text, source, target)


def build_gateway(app_settings) -> MistralGateway:
    asr = MistralASR(
        api_key=app_settings.MISTRAL_API_KEY,
        model=app_settings.MISTRAL_TRANSCRIBE_MODEL,
        api_url=app_settings.MISTRAL_API_URL,
        timeout=app_settings.MISTRAL_TIMEOUT,
        filename=app_settings.AUDIO_FILENAME,
    )
    translator = MistralTranslate(
        api_key=app_settings.MISTRAL_API_KEY,
        model=app_settings.MISTRAL_TRANSLATE_MODEL,
        api_url=app_settings.MISTRAL_API_URL,
        timeout=app_settings.MISTRAL_TIMEOUT,
    )
    return MistralGateway(asr, translator)
