import json
import os
from typing import Any, Optional

import httpx
import uvicorn
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from ..core.config_manager import ConfigManager
from ..core.error_handling import ErrorContext, ErrorHandler
from ..core.exceptions import ChatRecallError, LogStoreConnectionError, ValidationError
from ..core.logging import logger
from ..services.chat_service import ChatService
from ..services.history_service import HistoryService
from ..services.log_store import LogStore
from .middleware import RequestLoggerMiddleware


async def _read_json(request: Request) -> Any:
    """Request body as JSON, or None when it is empty or not JSON."""
    body = await request.body()
    if not body:
        return None
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


def _request_id(request: Request) -> str:
    return getattr(request.state, 'request_id', 'unknown')


def create_app(
    config_manager: Optional[ConfigManager] = None,
    log_store: Optional[LogStore] = None,
    httpx_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Build the application.

    Arguments left as None are created from configuration; the httpx client
    is opened at startup and closed at shutdown only when it was created
    here.
    """
    config_manager = config_manager or ConfigManager()
    log_store = log_store or LogStore.from_settings(config_manager.log_store_settings)

    app = FastAPI(title="chat-recall")
    app.state.config_manager = config_manager
    app.state.log_store = log_store
    app.state.httpx_client = httpx_client
    app.state.owns_httpx_client = httpx_client is None
    app.state.history_service = HistoryService(config_manager, log_store)

    @app.on_event("startup")
    async def startup_event():
        if app.state.httpx_client is None:
            app.state.httpx_client = httpx.AsyncClient()
        app.state.chat_service = ChatService(app.state.config_manager, app.state.httpx_client, app.state.log_store)

    @app.on_event("shutdown")
    async def shutdown_event():
        if app.state.owns_httpx_client and app.state.httpx_client is not None:
            await app.state.httpx_client.aclose()
            app.state.httpx_client = None

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        # Error details are already shaped as response bodies
        content = exc.detail if isinstance(exc.detail, dict) else {"error": str(exc.detail)}
        return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)

    app.add_middleware(RequestLoggerMiddleware)

    @app.get("/health")
    async def health_check():
        return {"status": "ok"}

    @app.post("/api/chat")
    async def chat(request: Request):
        request_id = _request_id(request)
        payload = await _read_json(request)
        context = ErrorContext(request_id=request_id, endpoint_path="/api/chat")
        if isinstance(payload, dict) and isinstance(payload.get("sessionId"), str):
            context.session_id = payload["sessionId"]

        try:
            response = await app.state.chat_service.chat(payload, request_id=request_id)
        except ChatRecallError as e:
            raise ErrorHandler.from_exception(e, context) from e
        except Exception as e:
            raise ErrorHandler.handle_internal_server_error(str(e) or "Unexpected error", context, e) from e

        return response.to_dict()

    @app.get("/api/logs")
    async def list_logs(request: Request):
        # Environment configuration only; no settings travel with a GET.
        logs = await app.state.history_service.list_logs(request_id=_request_id(request))
        return {"logs": [record.to_dict() for record in logs]}

    @app.post("/api/logs")
    async def search_logs(request: Request):
        payload = await _read_json(request)
        if not isinstance(payload, dict):
            payload = {}
        logs = await app.state.history_service.list_logs(
            raw_settings=payload.get("settings"),
            search=payload.get("search"),
            request_id=_request_id(request),
        )
        return {"logs": [record.to_dict() for record in logs]}

    @app.post("/api/test-db")
    async def test_db(request: Request):
        request_id = _request_id(request)
        payload = await _read_json(request)

        try:
            await app.state.history_service.test_connection(payload, request_id=request_id)
        except ValidationError as e:
            return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"ok": False, "error": e.message})
        except LogStoreConnectionError as e:
            logger.warning(f"MongoDB connection test failed: {e.message}", request_id=request_id)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"ok": False, "error": e.message}
            )

        return {"ok": True}

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8000")))
