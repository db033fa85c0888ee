# systemmax/db/session.py
import asyncio
from pathlib import Path
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker

from systemmax.core.config import settings

if settings.DATABASE_URL:
    _db_url = settings.DATABASE_URL
else:
    data_dir = (Path(__file__).resolve().parents[2] / "data")
    data_dir.mkdir(parents=True, exist_ok=True)
    db_file = data_dir / "systemmax.db"
    # usar caminho POSIX para o SQLAlchemy
    _db_url = f"sqlite+aiosqlite:///{db_file.as_posix()}"


def habilitar_savepoints_sqlite(engine: AsyncEngine) -> AsyncEngine:
    """
    O driver do sqlite controla BEGIN por conta própria e quebra SAVEPOINT;
    aqui o SQLAlchemy passa a emitir o BEGIN.
    """
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


engine = create_async_engine(_db_url, echo=False, future=True)
if engine.dialect.name == "sqlite":
    habilitar_savepoints_sqlite(engine)

AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def executar(db: AsyncSession, stmt: Any):
    """
    Executa `stmt` com o limite de DB_TIMEOUT_SECONDS.
    Estouro vira TimeoutError (tratado como falha de infraestrutura).
    """
    return await asyncio.wait_for(db.execute(stmt), timeout=settings.DB_TIMEOUT_SECONDS)
