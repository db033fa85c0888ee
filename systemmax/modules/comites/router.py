from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, func, delete, or_, cast, String
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from systemmax.core.dependencies import get_db, get_current_user, get_gestor
from systemmax.db.session import executar
from systemmax.modules.organizacao.models import Contrato, Usuario, STATUS_ATIVO
from systemmax.utils.paginacao import offset, pagination

from .elegibilidade import ComiteInvalido, motivo_duplicidade, validar_comite
from .models import Comite, ComiteMembro, TIPOS_COMITE
from .schemas import (
    ComiteListResponse,
    ComitePayload,
    ComiteResponse,
    SuccessResponse,
    UsuariosElegiveisResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ------------------------ helpers ------------------------
async def _get_comite_or_404(db: AsyncSession, comite_id: int) -> Comite:
    res = await executar(db, select(Comite).where(Comite.id == comite_id))
    comite = res.scalar_one_or_none()
    if not comite:
        raise HTTPException(status_code=404, detail="Comite nao encontrado")
    return comite


def _membro_out(matricula: int, usuario: Optional[Usuario]) -> dict:
    return {
        "matricula": matricula,
        "nome": usuario.nome if usuario else None,
        "email": usuario.email if usuario else None,
        "contrato_raiz": usuario.contrato_raiz if usuario else None,
    }


def _comite_out(comite: Comite, contrato_nome: Optional[str], membros: List[dict]) -> dict:
    return {
        "id": comite.id,
        "nome": comite.nome,
        "descricao": comite.descricao,
        "tipo": comite.tipo,
        "codigo_contrato": comite.codigo_contrato,
        "contrato_nome": contrato_nome if comite.codigo_contrato else None,
        "created_by": comite.created_by,
        "created_at": comite.created_at,
        "updated_at": comite.updated_at,
        "membros": membros,
    }


async def _hidratar(db: AsyncSession, comites: List[Comite]) -> List[dict]:
    """Anexa membros (com dados do usuário) e nome do contrato a cada comitê."""
    if not comites:
        return []

    ids = [c.id for c in comites]
    rows = (await executar(
        db,
        select(ComiteMembro.comite_id, ComiteMembro.matricula, Usuario)
        .join(Usuario, Usuario.matricula == ComiteMembro.matricula, isouter=True)
        .where(ComiteMembro.comite_id.in_(ids))
        .order_by(ComiteMembro.comite_id, ComiteMembro.matricula)
    )).all()

    membros_por_comite: dict[int, List[dict]] = {}
    for comite_id, matricula, usuario in rows:
        membros_por_comite.setdefault(comite_id, []).append(_membro_out(matricula, usuario))

    codigos = {c.codigo_contrato for c in comites if c.codigo_contrato}
    contratos: dict[str, Optional[str]] = {}
    if codigos:
        res = await executar(db, select(Contrato).where(Contrato.codigo.in_(codigos)))
        contratos = {c.codigo: c.nome for c in res.scalars().all()}

    return [
        _comite_out(c, contratos.get(c.codigo_contrato), membros_por_comite.get(c.id, []))
        for c in comites
    ]


async def _validar_ou_erro(db: AsyncSession, payload: ComitePayload, comite_id: Optional[int] = None):
    resultado = await validar_comite(
        db, payload.tipo, payload.codigo_contrato, payload.membros, comite_id=comite_id
    )
    if isinstance(resultado, ComiteInvalido):
        code = status.HTTP_409_CONFLICT if resultado.conflito else status.HTTP_400_BAD_REQUEST
        raise HTTPException(status_code=code, detail=resultado.motivo)
    return resultado


async def _commit_ou_409(db: AsyncSession, tipo: str, passos) -> None:
    """
    Executa `passos` e faz commit. Um insert concorrente que fure a
    validação esbarra nos índices únicos parciais e vira 409.
    """
    try:
        await passos()
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info("COMITE_DUPLICADO", extra={"tipo": tipo})
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=motivo_duplicidade(tipo))


# ------------------------ usuários elegíveis ------------------------
@router.get("/usuarios", response_model=UsuariosElegiveisResponse)
async def list_usuarios_elegiveis(
    contrato: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    user: Usuario = Depends(get_current_user),
):
    q = select(Usuario).where(Usuario.status == STATUS_ATIVO).order_by(Usuario.nome.asc())
    if contrato:
        q = q.where(Usuario.contrato_raiz == contrato)
    termo = (search or "").strip().lower()
    if termo:
        q = q.where(or_(
            func.lower(Usuario.nome).contains(termo),
            cast(Usuario.matricula, String).contains(termo),
        ))
    res = await executar(db, q)
    return {"success": True, "data": res.scalars().all()}


# ------------------------ comitês ------------------------
@router.get("", response_model=ComiteListResponse)
async def list_comites(
    search: Optional[str] = Query(None),
    tipo: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    user: Usuario = Depends(get_current_user),
):
    filtros = []
    if search:
        filtros.append(Comite.nome.ilike(f"%{search}%"))
    if tipo in TIPOS_COMITE:
        filtros.append(Comite.tipo == tipo)

    total = (await executar(db, select(func.count(Comite.id)).where(*filtros))).scalar_one()
    rows = (await executar(
        db,
        select(Comite)
        .where(*filtros)
        .order_by(Comite.created_at.desc(), Comite.id.desc())
        .offset(offset(page, limit))
        .limit(limit)
    )).scalars().all()

    return {
        "success": True,
        "data": await _hidratar(db, list(rows)),
        "pagination": pagination(page, limit, int(total)),
    }


@router.get("/{comite_id}", response_model=ComiteResponse)
async def get_comite(
    comite_id: int,
    db: AsyncSession = Depends(get_db),
    user: Usuario = Depends(get_current_user),
):
    comite = await _get_comite_or_404(db, comite_id)
    data = await _hidratar(db, [comite])
    return {"success": True, "data": data[0]}


@router.post("", response_model=ComiteResponse, status_code=status.HTTP_201_CREATED)
async def create_comite(
    payload: ComitePayload,
    db: AsyncSession = Depends(get_db),
    user: Usuario = Depends(get_gestor),
):
    valido = await _validar_ou_erro(db, payload)

    comite = Comite(
        nome=payload.nome,
        descricao=payload.descricao or None,
        tipo=valido.tipo,
        codigo_contrato=valido.codigo_contrato,
        created_by=user.matricula,
    )
    async def _gravar():
        db.add(comite)
        await db.flush()
        db.add_all([ComiteMembro(comite_id=comite.id, matricula=m) for m in valido.membros])

    # comitê e membros na mesma transação
    await _commit_ou_409(db, valido.tipo, _gravar)
    await db.refresh(comite)

    logger.info("COMITE_CRIADO", extra={"comite_id": comite.id, "tipo": comite.tipo, "membros": len(valido.membros)})

    membros = [_membro_out(m, valido.usuarios.get(m)) for m in valido.membros]
    return {"success": True, "data": _comite_out(comite, valido.contrato_nome, membros)}


@router.put("/{comite_id}", response_model=ComiteResponse)
async def update_comite(
    comite_id: int,
    payload: ComitePayload,
    db: AsyncSession = Depends(get_db),
    user: Usuario = Depends(get_gestor),
):
    comite = await _get_comite_or_404(db, comite_id)
    valido = await _validar_ou_erro(db, payload, comite_id=comite.id)

    async def _gravar():
        comite.nome = payload.nome
        comite.descricao = payload.descricao or None
        comite.tipo = valido.tipo
        comite.codigo_contrato = valido.codigo_contrato

        # membros: apaga todos e insere a nova lista
        await executar(db, delete(ComiteMembro).where(ComiteMembro.comite_id == comite.id))
        db.add_all([ComiteMembro(comite_id=comite.id, matricula=m) for m in valido.membros])

    await _commit_ou_409(db, valido.tipo, _gravar)
    await db.refresh(comite)

    membros = [_membro_out(m, valido.usuarios.get(m)) for m in valido.membros]
    return {"success": True, "data": _comite_out(comite, valido.contrato_nome, membros)}


@router.delete("/{comite_id}", response_model=SuccessResponse)
async def delete_comite(
    comite_id: int,
    db: AsyncSession = Depends(get_db),
    user: Usuario = Depends(get_gestor),
):
    comite = await _get_comite_or_404(db, comite_id)

    await executar(db, delete(ComiteMembro).where(ComiteMembro.comite_id == comite.id))
    await db.delete(comite)
    await db.commit()

    logger.info("COMITE_EXCLUIDO", extra={"comite_id": comite_id})
    return {"success": True}
