import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env from the backend directory
ENV_PATH = Path(__file__).resolve().parents[1] / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class Settings:
    MISTRAL_API_KEY: str = os.getenv("MISTRAL_API_KEY", "")
    MISTRAL_API_URL: str = os.getenv("MISTRAL_API_URL", "https://api.mistral.ai/v1").rstrip("/")
    MISTRAL_TRANSCRIBE_MODEL: str = os.getenv("MISTRAL_TRANSCRIBE_MODEL", "voxtral-mini-latest")
    MISTRAL_TRANSLATE_MODEL: str = os.getenv("MISTRAL_TRANSLATE_MODEL", "mistral-large-latest")
    MISTRAL_TIMEOUT: float = float(os.getenv("MISTRAL_TIMEOUT", "45") or 45)
    FRONTEND_ORIGIN: str = os.getenv("FRONTEND_ORIGIN", "*")
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = _int_env("PORT", 3002)
    DEFAULT_SOURCE_LANGUAGE: str = os.getenv("DEFAULT_SOURCE_LANGUAGE", "zh") or "zh"
    DEFAULT_TARGET_LANGUAGE: str = os.getenv("DEFAULT_TARGET_LANGUAGE", "en") or "en"
    # Streaming scheduler
    DEBOUNCE_MS: int = _int_env("DEBOUNCE_MS", 150)
    MIN_AUDIO_BYTES: int = _int_env("MIN_AUDIO_BYTES", 4000)
    MAX_BUFFER_BYTES: int = _int_env("MAX_BUFFER_BYTES", 0)  # 0 disables the high-water flush
    AUDIO_FILENAME: str = os.getenv("AUDIO_FILENAME", "audio.webm")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def mistral_configured(self) -> bool:
        return bool(self.MISTRAL_API_KEY)

    def origins(self):
        return [o.strip() for o in self.FRONTEND_ORIGIN.split(",") if o.strip()] or ["*"]

settings = Settings()
