from typing import AsyncIterator
from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from systemmax.db.session import AsyncSessionLocal, executar
from systemmax.modules.organizacao.models import Usuario, ROLES_GESTAO
from systemmax.core.config import settings
from systemmax.core.security import decode_token

# o token é emitido pelo serviço de sessão; tokenUrl só documenta
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


async def get_db() -> AsyncIterator[AsyncSession]:
    async with AsyncSessionLocal() as session:
        yield session


async def get_current_user(
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> Usuario:
    if not token:
        raise HTTPException(status_code=401, detail="Token de autorização não fornecido")
    try:
        payload = decode_token(token, settings.SECRET_KEY)
        matricula = int(payload.get("matricula") or payload.get("sub"))
    except (JWTError, TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Token inválido ou expirado")

    q = await executar(db, select(Usuario).where(Usuario.matricula == matricula))
    user = q.scalar_one_or_none()
    if not user or not user.ativo:
        raise HTTPException(status_code=401, detail="Usuário não encontrado ou inativo")
    return user


async def get_gestor(user: Usuario = Depends(get_current_user)) -> Usuario:
    if user.role not in ROLES_GESTAO:
        raise HTTPException(status_code=403, detail="Acesso negado")
    return user
