import logging
from typing import Dict, List

import requests

from .asr_mistral import GatewayError

SYSTEM_PROMPT = (
    "You are a professional translator. Translate the following text from {source} to {target}. "
    "Only return the translated text, no explanations."
)


class TranslationError(GatewayError):
    pass


class MistralTranslate:
    """Translation through a Mistral chat-completions model."""

    def __init__(self, api_key: str, model: str = "mistral-large-latest", api_url: str = "https://api.mistral.ai/v1", timeout: float = 45.0):
        self.api_key = api_key or ""
        self.model = model or "mistral-large-latest"
        self.api_url = (api_url or "https://api.mistral.ai/v1").rstrip("/")
        self.timeout = timeout
        self.logger = logging.getLogger("live_translate")

    @property
    def endpoint(self) -> str:
        return f"{self.api_url}/chat/completions"

    def _parse_response(self, payload: Dict) -> str:
        choices = payload.get("choices") or []
        if not isinstance(choices, list):
            raise TypeError("choices is not a list")
        if not choices:
            return ""
        first = choices[0] or {}
        if not isinstance(first, dict):
            raise TypeError("choice is not an object")
        message = first.get("message") or {}
        if not isinstance(message, dict):
            raise TypeError("message is not an object")
        content = message.get("content")
        if isinstance(content, list):
            texts: List[str] = []
            for part in content:
                if not isinstance(part, dict):
                    continue
                if part.get("type") in {"text", "output_text"}:
                    txt = part.get("text") or ""
                    if txt:
                        texts.append(str(txt).strip())
            return " ".join(t for t in texts if t).strip()
        if isinstance(content, str):
            return content.strip()
        return ""

    def translate(self, text: str, source: str, target: str) -> str:
        if not text:
            return ""
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT.format(source=source, target=target)},
                {"role": "user", "content": text},
            ],
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            resp = requests.post(self.endpoint, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            self.logger.error("mistral.translate.request_failed err=%s", exc)
            raise TranslationError(f"translation request failed: {exc}") from exc
        try:
            resp.raise_for_status()
        except requests.HTTPError as exc:
            self.logger.error("mistral.translate.http_failed status=%s err=%s body=%s", resp.status_code, exc, resp.text[:500])
            raise TranslationError(f"translation failed with status {resp.status_code}") from exc
        try:
            data = resp.json()
        except ValueError as exc:
            self.logger.error("mistral.translate.bad_json body=%s", resp.text[:500])
            raise TranslationError("translation response was not JSON") from exc
        if not isinstance(data, dict):
            raise TranslationError("translation response has unexpected shape")
        try:
            out = self._parse_response(data)
        except (AttributeError, TypeError, KeyError) as exc:
            self.logger.error("mistral.translate.bad_shape err=%s", exc)
            raise TranslationError("translation response has unexpected shape") from exc
        if not out:
            self.logger.warning("mistral.translate.empty_response payload_keys=%s", list(data.keys()))
        return out
