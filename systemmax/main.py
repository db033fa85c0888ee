# systemmax/main.py
import sys
import asyncio

# Event loop compatível no Windows (safe em outros SOs também)
if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

import json
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from systemmax.core.config import settings
from systemmax.core.errors import register_exception_handlers
from systemmax.core.logging import setup_logging
from systemmax.api.v1.router import api_router
from systemmax.db.session import engine
from systemmax.db.base import Base, import_models

logger = logging.getLogger(__name__)


def _normalize_origins(value) -> list[str]:
    """Aceita lista, JSON string ou CSV e devolve lista de origens."""
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [str(o).strip() for o in value if str(o).strip()]
    if isinstance(value, str):
        # tenta JSON primeiro
        try:
            as_json = json.loads(value)
            if isinstance(as_json, (list, tuple)):
                return [str(o).strip() for o in as_json if str(o).strip()]
        except ValueError:
            pass
        # fallback: CSV
        return [o.strip() for o in value.split(",") if o.strip()]
    # fallback final
    return [str(value).strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Em desenvolvimento, cria as tabelas automaticamente.
    Em produção o schema é gerenciado fora da aplicação.
    """
    env = (settings.ENVIRONMENT or "").lower().strip()
    if env == "dev":
        import_models()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    logger.info("SYSTEMMAX_INICIADO", extra={"environment": env})
    yield


setup_logging(settings.LOG_LEVEL)

# --- App ---
app = FastAPI(title="Systemmax Backend", lifespan=lifespan)
register_exception_handlers(app)

# --- CORS (colocado ANTES dos routers) ---
origins = _normalize_origins(getattr(settings, "CORS_ORIGINS", None))

if not origins:
    origins = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],        # Authorization, Content-Type etc.
)


# Healthcheck simples
@app.get("/healthz")
async def healthz():
    return {"status": "ok"}


# --- API v1 (só depois do CORS) ---
app.include_router(api_router, prefix=settings.API_V1_PREFIX)
