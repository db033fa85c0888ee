# systemmax/core/errors.py
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)

MENSAGEM_ERRO_INTERNO = "Erro interno do servidor"


def _envelope(status_code: int, mensagem: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": mensagem},
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _envelope(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # primeira falha apenas, no formato "campo: motivo"
    erros = exc.errors()
    if erros:
        primeiro = erros[0]
        campo = ".".join(str(p) for p in primeiro.get("loc", ()) if p != "body")
        mensagem = f"{campo}: {primeiro.get('msg')}" if campo else str(primeiro.get("msg"))
    else:
        mensagem = "Requisição inválida"
    return _envelope(400, mensagem)


async def infrastructure_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "FALHA_INFRAESTRUTURA",
        exc_info=exc,
        extra={"method": request.method, "path": request.url.path, "erro": type(exc).__name__},
    )
    return _envelope(500, MENSAGEM_ERRO_INTERNO)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, infrastructure_exception_handler)
    app.add_exception_handler(TimeoutError, infrastructure_exception_handler)
