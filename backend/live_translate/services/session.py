import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .audio_buffer import AudioBuffer

DEFAULT_SOURCE_LANGUAGE = "zh"
DEFAULT_TARGET_LANGUAGE = "en"


class SchedulerState(str, Enum):
    IDLE = "idle"
    ARMED = "armed"
    INVOKING = "invoking"


@dataclass
class Session:
    """Mutable state of one live connection. Owned by that connection only."""

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    buffer: AudioBuffer = field(default_factory=AudioBuffer)
    default_source: str = DEFAULT_SOURCE_LANGUAGE
    default_target: str = DEFAULT_TARGET_LANGUAGE
    source_language: str = ""
    target_language: str = ""
    last_transcript: str = ""
    last_translation: str = ""
    in_flight: bool = False
    state: SchedulerState = SchedulerState.IDLE
    # bumped on clear/stop; stale invocations compare against it
    epoch: int = 0
    closed: bool = False

    def __post_init__(self):
        self.source_language = self.source_language or self.default_source
        self.target_language = self.target_language or self.default_target

    def set_languages(self, source: Optional[str], target: Optional[str]) -> None:
        # Missing or blank codes fall back to the default pair, not to the previous value.
        self.source_language = (source or "").strip() or self.default_source
        self.target_language = (target or "").strip() or self.default_target

    def reset_utterance(self) -> None:
        """Drop buffered audio and the last emitted texts."""
        self.buffer.clear()
        self.last_transcript = ""
        self.last_translation = ""
