# systemmax/modules/organizacao/router.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from systemmax.core.dependencies import get_db, get_current_user, get_gestor
from systemmax.db.session import executar
from .models import Equipe, Letra, Usuario
from .schemas import (
    DefinirResponsavel,
    EquipeResponse,
    EquipesResponse,
    LetraResponse,
    LetrasResponse,
)

router = APIRouter()


async def _usuario_ativo_or_404(db: AsyncSession, matricula: int) -> Usuario:
    res = await executar(db, select(Usuario).where(Usuario.matricula == matricula))
    usuario = res.scalar_one_or_none()
    if not usuario:
        raise HTTPException(status_code=404, detail="Usuário não encontrado")
    if not usuario.ativo:
        raise HTTPException(status_code=400, detail="Usuário inativo não pode ser responsável")
    return usuario


@router.get("/equipes", response_model=EquipesResponse)
async def list_equipes(
    db: AsyncSession = Depends(get_db),
    user: Usuario = Depends(get_current_user),
):
    res = await executar(db, select(Equipe).order_by(Equipe.equipe))
    return {"success": True, "data": res.scalars().all()}


@router.get("/letras", response_model=LetrasResponse)
async def list_letras(
    db: AsyncSession = Depends(get_db),
    user: Usuario = Depends(get_current_user),
):
    res = await executar(db, select(Letra).order_by(Letra.letra))
    return {"success": True, "data": res.scalars().all()}


@router.put("/equipes/{equipe_id}/supervisor", response_model=EquipeResponse)
async def set_supervisor(
    equipe_id: int,
    payload: DefinirResponsavel,
    db: AsyncSession = Depends(get_db),
    user: Usuario = Depends(get_gestor),
):
    res = await executar(db, select(Equipe).where(Equipe.id == equipe_id))
    equipe = res.scalar_one_or_none()
    if not equipe:
        raise HTTPException(status_code=404, detail="Equipe não encontrada")

    if payload.matricula is not None:
        await _usuario_ativo_or_404(db, payload.matricula)

    # coluna única: atribuir substitui o supervisor anterior
    equipe.supervisor = payload.matricula
    await db.commit()
    await db.refresh(equipe)
    return {"success": True, "data": equipe}


@router.put("/letras/{letra_id}/lider", response_model=LetraResponse)
async def set_lider(
    letra_id: int,
    payload: DefinirResponsavel,
    db: AsyncSession = Depends(get_db),
    user: Usuario = Depends(get_gestor),
):
    res = await executar(db, select(Letra).where(Letra.id == letra_id))
    letra = res.scalar_one_or_none()
    if not letra:
        raise HTTPException(status_code=404, detail="Letra não encontrada")

    if payload.matricula is not None:
        await _usuario_ativo_or_404(db, payload.matricula)

    letra.lider = payload.matricula
    await db.commit()
    await db.refresh(letra)
    return {"success": True, "data": letra}
