# systemmax/services/hierarquia.py
"""
Consulta da hierarquia organizacional.

Dada a equipe e/ou a letra de um colaborador, devolve o supervisor da
equipe e o líder da letra. Quando nenhum líder é encontrado, usa um
Admin/Editor ativo como contato de escalonamento. Somente leitura.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from systemmax.core.config import settings
from systemmax.db.session import executar
from systemmax.modules.organizacao.models import (
    Equipe,
    Letra,
    Usuario,
    ROLES_GESTAO,
    STATUS_ATIVO,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Responsavel:
    matricula: int
    nome: str
    email: Optional[str] = None

    @classmethod
    def de_usuario(cls, usuario: Usuario) -> "Responsavel":
        return cls(matricula=usuario.matricula, nome=usuario.nome, email=usuario.email)


@dataclass(frozen=True)
class Responsaveis:
    lider: Optional[Responsavel] = None
    supervisor: Optional[Responsavel] = None


async def carregar_usuario(db: AsyncSession, matricula: int) -> Optional[Usuario]:
    res = await executar(db, select(Usuario).where(Usuario.matricula == matricula))
    return res.scalar_one_or_none()


async def _responsavel_por_matricula(db: AsyncSession, matricula: Optional[int]) -> Optional[Responsavel]:
    if matricula is None:
        return None
    usuario = await carregar_usuario(db, matricula)
    return Responsavel.de_usuario(usuario) if usuario else None


async def _lider_da_letra(db: AsyncSession, letra_id: int) -> Optional[Responsavel]:
    res = await executar(db, select(Letra.lider).where(Letra.id == letra_id))
    return await _responsavel_por_matricula(db, res.scalar_one_or_none())


async def _supervisor_da_equipe(db: AsyncSession, equipe_id: int) -> Optional[Responsavel]:
    res = await executar(db, select(Equipe.supervisor).where(Equipe.id == equipe_id))
    return await _responsavel_por_matricula(db, res.scalar_one_or_none())


def _gestores_ativos():
    return select(Usuario).where(
        or_(*(Usuario.role == r for r in ROLES_GESTAO)),
        Usuario.status == STATUS_ATIVO,
    )


async def buscar_contato_padrao(db: AsyncSession) -> Optional[Responsavel]:
    """
    Admin/Editor ativo usado quando a letra não tem líder.

    Usa ESCALATION_FALLBACK_MATRICULA se apontar para um Admin/Editor ativo;
    senão, o de menor matrícula.
    """
    configurado = settings.ESCALATION_FALLBACK_MATRICULA
    if configurado is not None:
        res = await executar(db, _gestores_ativos().where(Usuario.matricula == configurado))
        usuario = res.scalar_one_or_none()
        if usuario:
            return Responsavel.de_usuario(usuario)
        logger.warning("CONTATO_PADRAO_INVALIDO", extra={"matricula": configurado})

    res = await executar(db, _gestores_ativos().order_by(Usuario.matricula.asc()).limit(1))
    usuario = res.scalars().first()
    return Responsavel.de_usuario(usuario) if usuario else None


async def buscar_responsaveis(
    db: AsyncSession,
    equipe_id: Optional[int] = None,
    letra_id: Optional[int] = None,
) -> Responsaveis:
    lider = await _lider_da_letra(db, letra_id) if letra_id is not None else None
    supervisor = await _supervisor_da_equipe(db, equipe_id) if equipe_id is not None else None

    if lider is None:
        lider = await buscar_contato_padrao(db)
        if lider is None:
            logger.warning("SEM_RESPONSAVEL_PADRAO", extra={"equipe_id": equipe_id, "letra_id": letra_id})

    return Responsaveis(lider=lider, supervisor=supervisor)


async def matriculas_do_escopo(db: AsyncSession, usuario: Usuario) -> list[int]:
    """Matrículas de quem divide a equipe ou a letra com `usuario`."""
    filtros = []
    if usuario.equipe_id is not None:
        filtros.append(Usuario.equipe_id == usuario.equipe_id)
    if usuario.letra_id is not None:
        filtros.append(Usuario.letra_id == usuario.letra_id)
    if not filtros:
        return []
    res = await executar(db, select(Usuario.matricula).where(or_(*filtros)))
    return list(res.scalars().all())
