import os

# banco em memória e sem .env durante os testes
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "test"

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from systemmax.core.config import settings
from systemmax.core.dependencies import get_db
from systemmax.core.security import create_access_token
from systemmax.db.base import Base, import_models
from systemmax.db.session import habilitar_savepoints_sqlite
from systemmax.main import app
from systemmax.modules.emociograma.router import get_despachante
from systemmax.modules.organizacao.models import Contrato, Equipe, Letra, Usuario
from systemmax.services.notificacoes import DespachanteNotificacoes

# matrículas usadas nos cenários
ANA = 1001      # colaboradora da equipe T1 / letra A
CARLOS = 2002   # líder da letra A
BEA = 3003      # supervisora da equipe T1
DIEGO = 4004    # equipe T2 / letra B (sem líder)
INATIVO = 8008
ADMIN = 9001
EDITOR = 9002


async def _criar_tabelas(eng) -> None:
    import_models()
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def _popular(factory) -> None:
    async with factory() as s:
        s.add_all([
            Contrato(codigo="C100", nome="Contrato Norte"),
            Contrato(codigo="C200", nome="Contrato Sul"),
            Equipe(id=1, equipe="T1"),
            Equipe(id=2, equipe="T2"),
            Letra(id=1, letra="A"),
            Letra(id=2, letra="B"),
        ])
        await s.flush()
        s.add_all([
            Usuario(matricula=ANA, nome="Ana", email="ana@systemmax.local", role="Usuario",
                    funcao="Operadora", status="ativo", equipe_id=1, letra_id=1, contrato_raiz="C100"),
            Usuario(matricula=CARLOS, nome="Carlos", email="carlos@systemmax.local", role="Lider",
                    funcao="Líder de Turno", status="ativo", equipe_id=1, letra_id=1, contrato_raiz="C100"),
            Usuario(matricula=BEA, nome="Bea", email="bea@systemmax.local", role="Supervisor",
                    funcao="Supervisora de Produção", status="ativo", equipe_id=1, letra_id=None, contrato_raiz="C100"),
            Usuario(matricula=DIEGO, nome="Diego", email="diego@systemmax.local", role="Usuario",
                    funcao="Mecânico", status="ativo", equipe_id=2, letra_id=2, contrato_raiz="C200"),
            Usuario(matricula=INATIVO, nome="Ivo", role="Usuario", status="inativo", contrato_raiz="C100"),
            Usuario(matricula=ADMIN, nome="Admin", email="admin@systemmax.local", role="Admin", status="ativo"),
            Usuario(matricula=EDITOR, nome="Editor", email="editor@systemmax.local", role="Editor", status="ativo"),
        ])
        await s.flush()
        (await s.get(Equipe, 1)).supervisor = BEA
        (await s.get(Letra, 1)).lider = CARLOS
        await s.commit()


@pytest_asyncio.fixture
async def engine():
    eng = habilitar_savepoints_sqlite(
        create_async_engine(
            "sqlite+aiosqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    )
    await _criar_tabelas(eng)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    await _popular(factory)
    return factory


@pytest_asyncio.fixture
async def arquivo_session_factory(tmp_path):
    """
    Banco sqlite em arquivo: cada sessão usa a própria conexão e só enxerga
    o que as outras já commitaram.
    """
    eng = habilitar_savepoints_sqlite(
        create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'systemmax.db'}")
    )
    await _criar_tabelas(eng)
    factory = async_sessionmaker(eng, expire_on_commit=False, class_=AsyncSession)
    await _popular(factory)
    yield factory
    await eng.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
def token():
    def _token(matricula: int) -> dict:
        jwt = create_access_token(
            {"matricula": str(matricula)},
            expires_minutes=5,
            secret_key=settings.SECRET_KEY,
        )
        return {"Authorization": f"Bearer {jwt}"}
    return _token


@pytest_asyncio.fixture
async def client(session_factory):
    async def _get_db():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_despachante] = lambda: DespachanteNotificacoes(canais=[])

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
