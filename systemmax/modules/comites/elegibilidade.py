# systemmax/modules/comites/elegibilidade.py
"""
Validação de comitês: devolve o primeiro motivo de recusa encontrado,
sem acumular erros.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from systemmax.db.session import executar
from systemmax.modules.organizacao.models import Contrato, Usuario
from .models import Comite, TIPO_CORPORATIVO, TIPO_LOCAL, TIPOS_COMITE


@dataclass(frozen=True)
class ComiteValido:
    tipo: str
    codigo_contrato: Optional[str]
    membros: list[int]
    contrato_nome: Optional[str] = None
    usuarios: dict[int, Usuario] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class ComiteInvalido:
    motivo: str
    conflito: bool = False  # True -> 409


ResultadoValidacao = Union[ComiteValido, ComiteInvalido]


MOTIVO_LOCAL_DUPLICADO = "Ja existe um comite local para este contrato"
MOTIVO_CORPORATIVO_DUPLICADO = "Ja existe um comite corporativo cadastrado"


def motivo_duplicidade(tipo: str) -> str:
    return MOTIVO_LOCAL_DUPLICADO if tipo == TIPO_LOCAL else MOTIVO_CORPORATIVO_DUPLICADO


def normalizar_membros(membros: Iterable) -> list[Union[int, float]]:
    """
    Converte para número, descarta o que não for número e remove repetidos
    (mantém a ordem). Valores com parte fracionária ficam como float e são
    recusados por `validar_comite`.
    """
    vistos: dict[Union[int, float], None] = {}
    for m in membros or []:
        if isinstance(m, bool):
            continue
        if isinstance(m, int):
            vistos.setdefault(m, None)
            continue
        if isinstance(m, str):
            try:
                vistos.setdefault(int(m), None)
                continue
            except ValueError:
                pass
        try:
            valor = float(m)
        except (TypeError, ValueError):
            continue
        if not math.isfinite(valor):
            continue
        vistos.setdefault(int(valor) if valor.is_integer() else valor, None)
    return list(vistos)


async def _existe_outro(db: AsyncSession, *filtros, comite_id: Optional[int]) -> bool:
    q = select(Comite.id).where(*filtros)
    if comite_id is not None:
        q = q.where(Comite.id != comite_id)
    res = await executar(db, q.limit(1))
    return res.scalars().first() is not None


async def validar_comite(
    db: AsyncSession,
    tipo: str,
    codigo_contrato: Optional[str],
    membros: Iterable,
    comite_id: Optional[int] = None,
) -> ResultadoValidacao:
    if tipo not in TIPOS_COMITE:
        return ComiteInvalido("Campos obrigatorios: nome e tipo (local ou corporativo)")

    contrato_nome: Optional[str] = None
    if tipo == TIPO_LOCAL:
        if not codigo_contrato:
            return ComiteInvalido("Contrato obrigatorio para comite local")
        res = await executar(db, select(Contrato).where(Contrato.codigo == codigo_contrato))
        contrato = res.scalar_one_or_none()
        if not contrato:
            return ComiteInvalido("Contrato informado nao existe")
        contrato_nome = contrato.nome

        if await _existe_outro(
            db, Comite.tipo == TIPO_LOCAL, Comite.codigo_contrato == codigo_contrato, comite_id=comite_id
        ):
            return ComiteInvalido(MOTIVO_LOCAL_DUPLICADO, conflito=True)
    else:
        if codigo_contrato:
            return ComiteInvalido("Comite corporativo nao pode ter contrato")
        if await _existe_outro(db, Comite.tipo == TIPO_CORPORATIVO, comite_id=comite_id):
            return ComiteInvalido(MOTIVO_CORPORATIVO_DUPLICADO, conflito=True)

    matriculas = normalizar_membros(membros)
    if not matriculas:
        return ComiteInvalido("Selecione pelo menos um membro")
    if any(not isinstance(m, int) for m in matriculas):
        return ComiteInvalido("Alguns membros nao foram encontrados")

    res = await executar(db, select(Usuario).where(Usuario.matricula.in_(matriculas)))
    usuarios = {u.matricula: u for u in res.scalars().all()}

    if len(usuarios) != len(matriculas):
        return ComiteInvalido("Alguns membros nao foram encontrados")

    if any(not u.ativo for u in usuarios.values()):
        return ComiteInvalido("Todos os membros devem estar ativos")

    if tipo == TIPO_LOCAL and any(
        u.contrato_raiz and u.contrato_raiz != codigo_contrato for u in usuarios.values()
    ):
        return ComiteInvalido("Todos os membros do comite local devem pertencer ao contrato selecionado")

    return ComiteValido(
        tipo=tipo,
        codigo_contrato=codigo_contrato,
        membros=matriculas,
        contrato_nome=contrato_nome,
        usuarios=usuarios,
    )
