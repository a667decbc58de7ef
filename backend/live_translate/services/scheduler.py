"""
Debounced, single-flight processing of one session's audio.

Audio fragments arrive far more often than a transcription round trip can be
afforded. The scheduler batches them behind a short debounce timer and runs at
most one transcribe(+translate) invocation per session at a time:

    IDLE --audio--> ARMED --timer--> INVOKING --+--> IDLE
                      ^                         |
                      +---- audio arrived ------+

The ARMED/INVOKING loop is a single asyncio task per session. Gateway calls
are blocking HTTP and run in the default executor.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from ..models.schemas import ErrorEvent, TranscriptionEvent
from .gateway import Gateway
from .session import SchedulerState, Session

Emit = Callable[[Dict[str, Any]], Awaitable[None]]

DEBOUNCE_SEC = 0.15
MIN_AUDIO_BYTES = 4000


class ProcessingScheduler:
    def __init__(
        self,
        session: Session,
        gateway: Gateway,
        emit: Emit,
        debounce_sec: float = DEBOUNCE_SEC,
        min_audio_bytes: int = MIN_AUDIO_BYTES,
        max_buffer_bytes: int = 0,
    ):
        """
        Args:
            session: State owned by this scheduler's connection.
            gateway: Shared transcription/translation backend.
            emit: Coroutine sending one outbound event (JSON-ready dict).
            debounce_sec: Delay between the triggering fragment and the invocation.
            min_audio_bytes: Non-final invocations are skipped below this size.
            max_buffer_bytes: If > 0, a buffer this large is flushed as final.
        """
        self.session = session
        self.gateway = gateway
        self._emit = emit
        self.debounce_sec = max(0.0, float(debounce_sec))
        self.min_audio_bytes = max(0, int(min_audio_bytes))
        self.max_buffer_bytes = max(0, int(max_buffer_bytes))
        self.logger = logging.getLogger("live_translate")
        self._task: Optional[asyncio.Task] = None
        # detached tasks still finishing a gateway call after clear/close
        self._abandoned: Set[asyncio.Task] = set()
        self.timer_fires = 0

    # ----- inbound events -----

    def on_audio(self, fragment: bytes, source: Optional[str], target: Optional[str]) -> None:
        s = self.session
        s.set_languages(source, target)
        s.buffer.append(fragment)
        if not s.in_flight:
            self._arm()

    def on_config(self, source: Optional[str], target: Optional[str]) -> None:
        self.session.set_languages(source, target)

    async def stop(self, fragment: bytes = b"", source: Optional[str] = None, target: Optional[str] = None) -> None:
        """Flush the utterance with one final invocation, then reset the session."""
        s = self.session
        running = self._detach()
        if running is not None:
            # an invocation already in progress is allowed to finish
            await asyncio.gather(running, return_exceptions=True)
        if source or target:
            s.set_languages(source, target)
        s.buffer.append(fragment)
        try:
            await self.invoke(final=True)
        finally:
            s.reset_utterance()
            s.in_flight = False
            s.epoch += 1
            s.state = SchedulerState.IDLE
        self.logger.info("session.stop sid=%s", s.id)

    def clear(self) -> None:
        """Abandon the current utterance without emitting anything for it."""
        s = self.session
        self._detach()
        s.epoch += 1
        s.reset_utterance()
        s.in_flight = False
        s.state = SchedulerState.IDLE
        self.logger.info("session.clear sid=%s", s.id)

    def close(self) -> None:
        s = self.session
        self._detach()
        s.closed = True
        s.state = SchedulerState.IDLE

    @property
    def armed(self) -> bool:
        return self._task is not None and not self._task.done()

    # ----- timer loop -----

    def _arm(self) -> None:
        if self._task is not None or self.session.closed:
            return
        self.session.state = SchedulerState.ARMED
        self._task = asyncio.get_running_loop().create_task(self._debounce_loop())

    def _detach(self) -> Optional[asyncio.Task]:
        """Forget the current timer task; cancel it if it is only waiting."""
        task, self._task = self._task, None
        if task is None or task.done():
            return None
        if self.session.state is SchedulerState.ARMED:
            task.cancel()
        else:
            self._abandoned.add(task)
            task.add_done_callback(self._abandoned.discard)
        return task

    async def _debounce_loop(self) -> None:
        me = asyncio.current_task()
        s = self.session
        try:
            while True:
                s.state = SchedulerState.ARMED
                await asyncio.sleep(self.debounce_sec)
                if self._task is not me:
                    return
                self.timer_fires += 1
                if s.in_flight or s.buffer.is_empty():
                    return
                seen = s.buffer.appended_count
                flush = bool(self.max_buffer_bytes) and s.buffer.size >= self.max_buffer_bytes
                if flush:
                    self.logger.warning("invoke.high_water sid=%s bytes=%d", s.id, s.buffer.size)
                ran = await self.invoke(final=flush)
                if not ran or self._task is not me:
                    return
                if s.buffer.appended_count == seen or s.buffer.is_empty():
                    return
        finally:
            if self._task is me:
                self._task = None
                s.state = SchedulerState.IDLE

    # ----- invocation -----

    async def invoke(self, final: bool = False) -> bool:
        """
        One transcribe-then-maybe-translate round trip.

        Returns False when nothing was attempted: another invocation is in
        flight, or a non-final pass found too little audio. Gateway failures
        are reported to the client as an error event, never raised.
        """
        s = self.session
        if s.in_flight:
            self.logger.debug("invoke.skip.in_flight sid=%s", s.id)
            return False
        if not final and s.buffer.size < max(1, self.min_audio_bytes):
            self.logger.debug("invoke.skip.small sid=%s bytes=%d min=%d", s.id, s.buffer.size, self.min_audio_bytes)
            return False

        s.in_flight = True
        s.state = SchedulerState.INVOKING
        epoch = s.epoch
        source, target = s.source_language, s.target_language
        blob = s.buffer.drain_all() if final else s.buffer.snapshot()
        self.logger.info("invoke.start sid=%s bytes=%d final=%s src=%s tgt=%s", s.id, len(blob), final, source, target)

        loop = asyncio.get_running_loop()
        stage = "Transcription"
        event = None
        try:
            text = await loop.run_in_executor(None, self.gateway.transcribe, blob, source)
            text = text or ""
            if epoch != s.epoch:
                self.logger.info("invoke.stale sid=%s", s.id)
            elif not text or text == s.last_transcript:
                self.logger.info("invoke.unchanged sid=%s empty=%s", s.id, not text)
            else:
                stage = "Translation"
                translated = await loop.run_in_executor(None, self.gateway.translate, text, source, target)
                translated = translated or ""
                if epoch != s.epoch:
                    self.logger.info("invoke.stale sid=%s", s.id)
                else:
                    s.last_transcript = text
                    s.last_translation = translated
                    event = TranscriptionEvent(source_text=text, target_text=translated, is_final=final)
                    self.logger.info("invoke.result sid=%s src_len=%d tgt_len=%d final=%s", s.id, len(text), len(translated), final)
        except Exception as e:
            if epoch == s.epoch:
                self.logger.exception("invoke.error sid=%s stage=%s err=%s", s.id, stage.lower(), e)
                event = ErrorEvent(message=f"{stage} failed")
            else:
                self.logger.warning("invoke.error.stale sid=%s err=%s", s.id, e)
        finally:
            # clear/stop already reset the flag when the epoch moved on
            if epoch == s.epoch:
                s.in_flight = False
                s.state = SchedulerState.IDLE
                if final:
                    s.last_transcript = ""
                    s.last_translation = ""

        if event is not None:
            await self._send(event.model_dump(by_alias=True))
        return True

    async def _send(self, payload: Dict[str, Any]) -> None:
        if self.session.closed:
            return
        await self._emit(payload)
