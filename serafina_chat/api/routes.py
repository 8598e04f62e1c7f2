import json
import logging

from fastapi import APIRouter, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response

from serafina_chat.api.schemas import ChatReply, ErrorBody
from serafina_chat.core.chat import build_chat_handler
from serafina_chat.core.errors import ChatError
from serafina_chat.core.limiter import client_identifier
from serafina_chat.core.locales import MISSING_MESSAGE, localized
from serafina_chat.core.metrics import metrics
from serafina_chat.core.settings import SETTINGS

router = APIRouter()
logger = logging.getLogger(__name__)

chat_handler = build_chat_handler(SETTINGS)

ALLOWED_METHODS = "POST, OPTIONS"
INTERNAL_ERROR = "Errore interno"


def _cors_headers(origin: str) -> dict[str, str]:
    allowed = SETTINGS.allowed_origins
    allow = origin if origin in allowed else allowed[0]
    return {
        "Access-Control-Allow-Origin": allow,
        "Access-Control-Allow-Methods": ALLOWED_METHODS,
        "Access-Control-Allow-Headers": "Content-Type",
        "Vary": "Origin",
    }


def _error_response(status_code: int, error: str, cors: dict[str, str], detail: str | None = None) -> JSONResponse:
    content = jsonable_encoder(ErrorBody(error=error, detail=detail or None), exclude_none=True)
    return JSONResponse(status_code=status_code, content=content, headers=cors)


async def _read_body(request: Request) -> dict | None:
    raw = await request.body()
    if not raw:
        return {}
    try:
        body = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    return body if isinstance(body, dict) else None


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/metrics")
def metrics_endpoint():
    return metrics.snapshot()


@router.options("/chat")
def chat_preflight(request: Request):
    return Response(status_code=204, headers=_cors_headers(request.headers.get("origin", "")))


@router.api_route("/chat", methods=["GET", "HEAD", "PUT", "PATCH", "DELETE", "TRACE"])
def chat_method_not_allowed(request: Request):
    headers = _cors_headers(request.headers.get("origin", ""))
    headers["Allow"] = ALLOWED_METHODS
    return Response(content="Method Not Allowed", status_code=405, headers=headers, media_type="text/plain")


@router.post("/chat")
async def chat(request: Request):
    cors = _cors_headers(request.headers.get("origin", ""))
    client_id = client_identifier(request.headers.get("x-forwarded-for"))
    try:
        chat_handler.ensure_configured()
        body = await _read_body(request)
        if body is None:
            metrics.record_request("invalid_json")
            return _error_response(400, localized(MISSING_MESSAGE, "it"), cors, detail="invalid JSON body")
        result = await chat_handler.handle(body.get("message"), body.get("locale"), client_id)
    except ChatError as exc:
        metrics.record_request(exc.code)
        return _error_response(exc.status_code, exc.message, cors, detail=exc.detail)
    except Exception:
        metrics.record_request("internal_error")
        logger.exception("unexpected failure handling chat request")
        return _error_response(500, INTERNAL_ERROR, cors)

    metrics.record_request("ok", source=result.source)
    return JSONResponse(status_code=200, content=jsonable_encoder(ChatReply(reply=result.reply)), headers=cors)
