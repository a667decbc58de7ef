import logging
from typing import Dict, Optional, Union

from ..models.schemas import (
    AudioMessage,
    ClearMessage,
    ConfigMessage,
    ConnectedEvent,
    MalformedMessageError,
    StopMessage,
    parse_message,
)
from .gateway import Gateway
from .scheduler import DEBOUNCE_SEC, MIN_AUDIO_BYTES, Emit, ProcessingScheduler
from .session import DEFAULT_SOURCE_LANGUAGE, DEFAULT_TARGET_LANGUAGE, Session


class SessionRegistry:
    """Live sessions keyed by id, one per WebSocket connection.

    Only touched from the event loop, so a plain dict is enough.
    """

    def __init__(
        self,
        gateway: Gateway,
        debounce_sec: float = DEBOUNCE_SEC,
        min_audio_bytes: int = MIN_AUDIO_BYTES,
        max_buffer_bytes: int = 0,
        default_source: str = DEFAULT_SOURCE_LANGUAGE,
        default_target: str = DEFAULT_TARGET_LANGUAGE,
    ):
        self.gateway = gateway
        self.debounce_sec = debounce_sec
        self.min_audio_bytes = min_audio_bytes
        self.max_buffer_bytes = max_buffer_bytes
        self.default_source = default_source
        self.default_target = default_target
        self.logger = logging.getLogger("live_translate")
        self._sessions: Dict[str, ProcessingScheduler] = {}

    @classmethod
    def from_settings(cls, gateway: Gateway, app_settings) -> "SessionRegistry":
        return cls(
            gateway,
            debounce_sec=app_settings.DEBOUNCE_MS / 1000.0,
            min_audio_bytes=app_settings.MIN_AUDIO_BYTES,
            max_buffer_bytes=app_settings.MAX_BUFFER_BYTES,
            default_source=app_settings.DEFAULT_SOURCE_LANGUAGE,
            default_target=app_settings.DEFAULT_TARGET_LANGUAGE,
        )

    async def on_connect(self, send: Emit) -> str:
        session = Session(default_source=self.default_source, default_target=self.default_target)
        while session.id in self._sessions:
            session = Session(default_source=self.default_source, default_target=self.default_target)
        self._sessions[session.id] = ProcessingScheduler(
            session,
            self.gateway,
            send,
            debounce_sec=self.debounce_sec,
            min_audio_bytes=self.min_audio_bytes,
            max_buffer_bytes=self.max_buffer_bytes,
        )
        self.logger.info("session.connect sid=%s active=%d", session.id, len(self._sessions))
        await send(ConnectedEvent(session_id=session.id).model_dump(by_alias=True))
        return session.id

    async def on_message(self, session_id: str, raw: Union[str, bytes]) -> None:
        scheduler = self._sessions.get(session_id)
        if scheduler is None:
            self.logger.warning("session.unknown sid=%s", session_id)
            return
        try:
            message = parse_message(raw)
        except MalformedMessageError as e:
            self.logger.warning("message.malformed sid=%s err=%s", session_id, e)
            return

        if isinstance(message, AudioMessage):
            self.logger.debug("message.audio sid=%s bytes=%d", session_id, len(message.audio))
            scheduler.on_audio(message.audio, message.source_language, message.target_language)
        elif isinstance(message, ConfigMessage):
            scheduler.on_config(message.source_language, message.target_language)
            self.logger.info(
                "message.config sid=%s src=%s tgt=%s",
                session_id,
                scheduler.session.source_language,
                scheduler.session.target_language,
            )
        elif isinstance(message, StopMessage):
            await scheduler.stop(message.audio, message.source_language, message.target_language)
        elif isinstance(message, ClearMessage):
            scheduler.clear()

    def on_disconnect(self, session_id: str) -> None:
        scheduler = self._sessions.pop(session_id, None)
        if scheduler is None:
            return
        scheduler.close()
        self.logger.info("session.disconnect sid=%s active=%d", session_id, len(self._sessions))

    def get(self, session_id: str) -> Optional[Session]:
        scheduler = self._sessions.get(session_id)
        return scheduler.session if scheduler else None

    def scheduler(self, session_id: str) -> Optional[ProcessingScheduler]:
        return self._sessions.get(session_id)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
