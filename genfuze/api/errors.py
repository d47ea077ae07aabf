"""
统一错误响应：所有错误都渲染为 JSON {"error": ..., "details": ...}
"""

from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from genfuze.auth.tokens import AuthError
from genfuze.llm.errors import LLMError
from genfuze.log import get_logger

logger = get_logger(__name__)


def api_error(status_code: int, error: str, details: Any = None, **extra: Any) -> HTTPException:
    """构造 HTTPException，detail 为 dict，原样作为响应体。"""
    body: dict = {"error": error}
    if details is not None:
        body["details"] = details
    body.update(extra)
    return HTTPException(status_code=status_code, detail=body)


def _body(detail: Any) -> dict:
    if isinstance(detail, dict):
        return detail
    return {"error": str(detail) if detail is not None else "Error"}


def register_error_handlers(app: FastAPI) -> None:

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content=_body(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        details = [
            {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"), "message": err.get("msg", "")}
            for err in exc.errors()
        ]
        return JSONResponse(status_code=400, content={"error": "Invalid request", "details": details})

    @app.exception_handler(AuthError)
    async def auth_error(request: Request, exc: AuthError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(LLMError)
    async def llm_error(request: Request, exc: LLMError):
        logger.warning("[api] unhandled LLM error on %s: %s", request.url.path, exc.message)
        return JSONResponse(status_code=502, content={"error": "LLM API call failed", "details": exc.message})

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("[api] unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error", "details": str(exc)})
