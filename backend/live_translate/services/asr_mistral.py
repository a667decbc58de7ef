import logging
from typing import Dict, Optional

import requests


class GatewayError(Exception):
    pass


class TranscriptionError(GatewayError):
    pass


class MistralASR:
    """ASR client using Mistral's audio transcriptions endpoint (VoxTral)."""

    def __init__(self, api_key: str, model: str = "voxtral-mini-latest", api_url: str = "https://api.mistral.ai/v1", timeout: float = 45.0, filename: str = "audio.webm"):
        self.api_key = api_key or ""
        self.model = model or "voxtral-mini-latest"
        self.api_url = (api_url or "https://api.mistral.ai/v1").rstrip("/")
        self.timeout = timeout
        self.filename = filename or "audio.webm"
        self.logger = logging.getLogger("live_translate")
        if not self.api_key:
            self.logger.warning("mistral.asr.no_api_key requests will be rejected")

    @property
    def endpoint(self) -> str:
        return f"{self.api_url}/audio/transcriptions"

    def _parse_response(self, payload: Dict) -> str:
        text = payload.get("text")
        if isinstance(text, str):
            return text.strip()
        # Segment-style answers carry the text per segment
        segments = payload.get("segments") or []
        if not isinstance(segments, list):
            raise TypeError("segments is not a list")
        parts = [str(s.get("text") or "").strip() for s in segments if isinstance(s, dict)]
        return " ".join(p for p in parts if p).strip()

    def transcribe(self, audio_bytes: bytes, language: Optional[str] = None) -> str:
        data = {"model": self.model}
        if language:
            data["language"] = language
        files = {"file": (self.filename, audio_bytes or b"", "audio/webm")}
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            resp = requests.post(self.endpoint, data=data, files=files, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            self.logger.error("mistral.asr.request_failed err=%s", exc)
            raise TranscriptionError(f"transcription request failed: {exc}") from exc
        try:
            resp.raise_for_status()
        except requests.HTTPError as exc:
            self.logger.error("mistral.asr.http_failed status=%s err=%s body=%s", resp.status_code, exc, resp.text[:500])
            raise TranscriptionError(f"transcription failed with status {resp.status_code}") from exc
        try:
            payload = resp.json()
        except ValueError as exc:
            self.logger.error("mistral.asr.bad_json body=%s", resp.text[:500])
            raise TranscriptionError("transcription response was not JSON") from exc
        if not isinstance(payload, dict):
            raise TranscriptionError("transcription response has unexpected shape")
        try:
            text = self._parse_response(payload)
        except (AttributeError, TypeError, KeyError) as exc:
            self.logger.error("mistral.asr.bad_shape err=%s", exc)
            raise TranscriptionError("transcription response has unexpected shape") from exc
        if not text:
            self.logger.info("mistral.asr.empty_response bytes=%d lang=%s", len(audio_bytes or b""), language)
        return text
