import pytest
from fastapi.testclient import TestClient

from live_translate.config import Settings
from live_translate.main import create_app
from live_translate.services import translate_mistral
from live_translate.services.gateway import TranslationError, build_gateway

from conftest import FakeGateway, audio_frame


class _FastSettings(Settings):
    DEBOUNCE_MS = 10


def _receive_until_type(ws, expected_type: str, max_steps: int = 20):
    seen = []
    for _ in range(max_steps):
        msg = ws.receive_json()
        if msg.get("type") == expected_type:
            return msg
        seen.append(msg.get("type"))
    pytest.fail(f"did not receive {expected_type}, seen={seen}")


@pytest.mark.parametrize("path", ["/", "/ws"])
def test_ws_connected_partial_final_flow(path):
    gateway = FakeGateway(texts=["ni hao", "ni hao shi jie"])
    client = TestClient(create_app(gateway, _FastSettings()))

    with client.websocket_connect(path) as ws:
        connected = ws.receive_json()
        assert connected["type"] == "connected"
        assert connected["sessionId"]

        ws.send_text(audio_frame(size=5000, sourceLanguage="zh", targetLanguage="en"))
        partial = _receive_until_type(ws, "transcription")
        assert partial == {
            "type": "transcription",
            "sourceText": "ni hao",
            "targetText": "[zh->en] ni hao",
            "isFinal": False,
        }

        ws.send_text(audio_frame("stop", size=10))
        final = _receive_until_type(ws, "transcription")
        assert final["sourceText"] == "ni hao shi jie"
        assert final["isFinal"] is True


def test_ws_survives_malformed_messages():
    gateway = FakeGateway(texts=["bonjour"])
    client = TestClient(create_app(gateway, _FastSettings()))

    with client.websocket_connect("/") as ws:
        ws.receive_json()
        ws.send_text("garbage")
        ws.send_text('{"type": "unknown"}')
        ws.send_text(audio_frame(size=5000, sourceLanguage="fr", targetLanguage="en"))
        msg = ws.receive_json()
        assert msg["type"] == "transcription"
        assert msg["sourceText"] == "bonjour"


def test_ws_reports_gateway_error_and_keeps_session():
    gateway = FakeGateway(texts=["hola"])
    gateway.translate_error = TranslationError("down")
    app = create_app(gateway, _FastSettings())
    client = TestClient(app)

    with client.websocket_connect("/") as ws:
        ws.receive_json()
        ws.send_text(audio_frame(size=5000))
        err = ws.receive_json()
        assert err == {"type": "error", "message": "Translation failed"}

        gateway.translate_error = None
        ws.send_text(audio_frame("stop"))
        final = ws.receive_json()
        assert final["type"] == "transcription"
        assert final["isFinal"] is True

    assert len(app.state.registry) == 0


def test_rest_translate():
    gateway = FakeGateway()
    client = TestClient(create_app(gateway, _FastSettings()))

    resp = client.post("/api/translate", json={"text": "hello", "sourceLanguage": "en", "targetLanguage": "ja"})

    assert resp.status_code == 200
    assert resp.json() == {"translatedText": "[en->ja] hello", "success": True}


def test_rest_translate_requires_text():
    client = TestClient(create_app(FakeGateway(), _FastSettings()))

    resp = client.post("/api/translate", json={"text": "", "targetLanguage": "ja"})

    assert resp.status_code == 400
    assert resp.json() == {"error": "Text required"}


def test_rest_translate_failure_and_empty_answer():
    gateway = FakeGateway()
    client = TestClient(create_app(gateway, _FastSettings()))

    gateway.translate_error = TranslationError("quota")
    resp = client.post("/api/translate", json={"text": "hello", "targetLanguage": "ja"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Translation failed"}

    gateway.translate_error = None
    gateway.translate_result = ""
    resp = client.post("/api/translate", json={"text": "hello", "targetLanguage": "ja"})
    assert resp.json()["translatedText"] == "hello"


def test_health_reports_configuration():
    client = TestClient(create_app(FakeGateway(), _FastSettings()))

    resp = client.get("/api/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "mistralConfigured": False}


def test_rest_translate_unexpected_backend_reply(monkeypatch):
    class _Resp:
        status_code = 200
        text = '{"choices": ["oops"]}'

        def raise_for_status(self):
            pass

        def json(self):
            return {"choices": ["oops"]}

    monkeypatch.setattr(translate_mistral.requests, "post", lambda url, **kwargs: _Resp())
    client = TestClient(create_app(build_gateway(_FastSettings()), _FastSettings()))

    resp = client.post("/api/translate", json={"text": "hello", "targetLanguage": "ja"})

    assert resp.status_code == 500
    assert resp.json() == {"error": "Translation failed"}
