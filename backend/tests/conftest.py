import asyncio
import base64
import json
import threading

import pytest


class FakeGateway:
    """Stands in for Mistral. transcribe() answers from `texts` (last one repeats)."""

    configured = False

    def __init__(self, texts=("hello",)):
        self.texts = list(texts)
        self.transcribe_calls = []
        self.translate_calls = []
        self.transcribe_error = None
        self.translate_error = None
        self.translate_result = None
        # when set, transcribe() blocks until gate.set()
        self.gate = None
        self._lock = threading.Lock()
        self.active = 0
        self.max_active = 0

    def transcribe(self, audio_bytes, language):
        with self._lock:
            self.transcribe_calls.append((bytes(audio_bytes), language))
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                self.gate.wait(5)
            if self.transcribe_error is not None:
                raise self.transcribe_error
            if not self.texts:
                return ""
            return self.texts.pop(0) if len(self.texts) > 1 else self.texts[0]
        finally:
            with self._lock:
                self.active -= 1

    def translate(self, text, source, target):
        self.translate_calls.append((text, source, target))
        if self.translate_error is not None:
            raise self.translate_error
        if self.translate_result is not None:
            return self.translate_result
        return f"[{source}->{target}] {text}"


class Outbox:
    """Collects events a session emits."""

    def __init__(self):
        self.events = []

    async def __call__(self, payload):
        self.events.append(payload)

    def of_type(self, kind):
        return [e for e in self.events if e.get("type") == kind]


async def wait_for(predicate, timeout=2.0, interval=0.01):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(interval)


def audio_frame(kind="audio", size=0, **extra):
    msg = {"type": kind}
    if size:
        msg["audio"] = base64.b64encode(b"\x01" * size).decode("ascii")
    msg.update(extra)
    return json.dumps(msg)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def outbox():
    return Outbox()
