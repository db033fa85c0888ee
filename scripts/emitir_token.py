# scripts/emitir_token.py
# Gera um JWT de desenvolvimento para uma matrícula existente.
# Uso: python -m scripts.emitir_token
import sys, asyncio
if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from sqlalchemy import select

from systemmax.core.config import settings
from systemmax.core.security import create_access_token
from systemmax.db.session import AsyncSessionLocal
from systemmax.modules.organizacao.models import Usuario


async def main():
    raw = input("Matrícula: ").strip()
    if not raw.isdigit():
        print("Matrícula inválida")
        return

    async with AsyncSessionLocal() as db:
        res = await db.execute(select(Usuario).where(Usuario.matricula == int(raw)))
        u = res.scalar_one_or_none()
        if not u:
            print("Usuário não encontrado")
            return

        token = create_access_token(
            {"matricula": str(u.matricula), "nome": u.nome, "email": u.email, "role": u.role},
            expires_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
            secret_key=settings.SECRET_KEY,
        )
        print(f"{u.nome} ({u.role})")
        print(token)

if __name__ == "__main__":
    asyncio.run(main())
