"""
Edge proxy for the Gemini REST API.

A single-endpoint app the browser can call instead of talking to the
provider directly. It forwards one message per request with the
complexity-coach persona and answers with ``{"reply": ...}`` or
``{"error": ...}`` plus an HTTP status the caller can act on.
"""

from typing import Any, AsyncIterator, Dict

import httpx
from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from structlog import get_logger

from ..config import PROXY_CREDENTIAL, ConfigProvider, EnvironmentConfig, get_settings
from ..services.llm import FALLBACK_REPLY
from ..services.personas import COMPLEXITY_PERSONA

logger = get_logger()

GEMINI_URL_TEMPLATE = (
    "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-Client-Info, Apikey",
}

settings = get_settings()
proxy_config = EnvironmentConfig()


def get_config() -> ConfigProvider:
    """Returns the credential source"""
    return proxy_config


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    """Yields an HTTP client for the upstream call"""
    async with httpx.AsyncClient(timeout=settings.proxy_timeout) as client:
        yield client


def build_payload(message: str, persona: str = COMPLEXITY_PERSONA) -> Dict[str, Any]:
    """Raw ``generateContent`` body: one user turn plus the system prompt."""
    return {
        "system_instruction": {"parts": [{"text": persona}]},
        "contents": [{"parts": [{"text": message}]}],
    }


def extract_reply(data: Any) -> str:
    """First candidate's first text part, or the fallback reply."""
    try:
        text = data["candidates"][0]["content"]["parts"][0].get("text")
    except (KeyError, IndexError, TypeError, AttributeError):
        text = None
    return text or FALLBACK_REPLY


def error_response(error: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": error}, status_code=status_code)


app = FastAPI(
    title="AlgoMentor Gemini Proxy",
    description="Forwards chat messages to Gemini with a fixed tutoring persona",
    version="0.1.0",
)

FastAPIInstrumentor.instrument_app(app)


@app.middleware("http")
async def cors_middleware(request: Request, call_next):
    """Answers preflight requests and stamps CORS headers on every response"""
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)
    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


@app.post("/chat-with-gemini")
async def chat_with_gemini(
    request: Request,
    config: ConfigProvider = Depends(get_config),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> JSONResponse:
    """Forwards one message to Gemini and returns its reply"""
    try:
        body = await request.json()
        message = body.get("message") if isinstance(body, dict) else None
        if not message:
            return error_response("Message is required", 400)

        api_key = config.get_credential(PROXY_CREDENTIAL)
        if not api_key:
            logger.error("proxy_missing_credential", credential=PROXY_CREDENTIAL)
            return error_response(f"{PROXY_CREDENTIAL} is not configured", 500)

        upstream = await client.post(
            GEMINI_URL_TEMPLATE.format(model=settings.proxy_model),
            json=build_payload(message),
            headers={"x-goog-api-key": api_key},
        )
        if not upstream.is_success:
            logger.warning(
                "proxy_upstream_error",
                status=upstream.status_code,
                body=upstream.text,
            )
            return error_response(
                f"Gemini API error: {upstream.status_code}", upstream.status_code
            )

        return JSONResponse({"reply": extract_reply(upstream.json())})
    except Exception as e:
        logger.error("proxy_request_error", error=str(e))
        return error_response(f"Server error: {e}", 500)
