import logging
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .models.schemas import HealthResponse, TranslateRequest, TranslateResponse
from .services.gateway import Gateway, TranslationError, build_gateway
from .services.registry import SessionRegistry

# Logging
logger = logging.getLogger("live_translate")
if not logger.handlers:
    handler = logging.StreamHandler()
    fmt = logging.Formatter("[%(asctime)s] %(levelname)s %(name)s: %(message)s")
    handler.setFormatter(fmt)
    logger.addHandler(handler)
logger.setLevel(getattr(logging, settings.LOG_LEVEL, logging.INFO))


def create_app(gateway: Optional[Gateway] = None, app_settings=settings) -> FastAPI:
    """Build the relay app. Tests pass their own gateway; otherwise Mistral is used."""
    app = FastAPI(title="Live Speech Translation Relay")

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.origins(),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if gateway is None:
        if not app_settings.MISTRAL_API_KEY:
            logger.warning("startup.mistral_not_configured set MISTRAL_API_KEY in backend/.env")
        gateway = build_gateway(app_settings)
    registry = SessionRegistry.from_settings(gateway, app_settings)
    app.state.gateway = gateway
    app.state.registry = registry

    async def session_socket(websocket: WebSocket) -> None:
        await websocket.accept()

        async def send(payload: Dict[str, Any]) -> None:
            try:
                await websocket.send_json(payload)
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.debug("ws.send.closed err=%s", e)

        sid = await registry.on_connect(send)
        try:
            while True:
                data = await websocket.receive()
                if data.get("type") == "websocket.disconnect":
                    break
                msg = data.get("text")
                if msg is None:
                    msg = data.get("bytes")
                if msg is None:
                    continue
                await registry.on_message(sid, msg)
        except WebSocketDisconnect:
            pass
        finally:
            registry.on_disconnect(sid)

    # The browser client connects to the bare host; /ws is kept for proxies.
    app.add_api_websocket_route("/", session_socket)
    app.add_api_websocket_route("/ws", session_socket)

    @app.post("/api/translate", response_model=TranslateResponse)
    def translate_text(body: TranslateRequest):
        if not body.text:
            return JSONResponse(status_code=400, content={"error": "Text required"})
        source = body.source_language or app_settings.DEFAULT_SOURCE_LANGUAGE
        target = body.target_language or app_settings.DEFAULT_TARGET_LANGUAGE
        try:
            translated = gateway.translate(body.text, source, target)
        except TranslationError as e:
            logger.error("api.translate.failed src=%s tgt=%s err=%s", source, target, e)
            return JSONResponse(status_code=500, content={"error": "Translation failed"})
        logger.info("api.translate src=%s tgt=%s in_len=%d out_len=%d", source, target, len(body.text), len(translated or ""))
        # An empty model answer falls back to the input text
        return TranslateResponse(translated_text=translated or body.text)

    @app.get("/api/health", response_model=HealthResponse)
    def health():
        configured = getattr(gateway, "configured", app_settings.mistral_configured)
        return HealthResponse(mistral_configured=bool(configured))

    return app


app = create_app()


def run() -> None:
    logger.info("Server running on %s:%d, WebSocket ready for real-time transcription", settings.HOST, settings.PORT)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
