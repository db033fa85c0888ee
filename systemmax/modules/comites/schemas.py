from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, field_validator

from systemmax.modules.organizacao.schemas import UsuarioResumo
from systemmax.utils.paginacao import Pagination


class ComitePayload(BaseModel):
    nome: str
    descricao: Optional[str] = None
    tipo: str
    codigo_contrato: Optional[str] = None
    # aceita números ou strings numéricas; o resto é descartado na validação
    membros: List[Any] = []

    @field_validator("nome")
    @classmethod
    def _nome_obrigatorio(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("nome é obrigatório")
        return v

    @field_validator("codigo_contrato")
    @classmethod
    def _contrato_vazio_vira_none(cls, v: Optional[str]) -> Optional[str]:
        return (v or "").strip() or None


class MembroOut(BaseModel):
    matricula: int
    nome: Optional[str] = None
    email: Optional[str] = None
    contrato_raiz: Optional[str] = None


class ComiteOut(BaseModel):
    id: int
    nome: str
    descricao: Optional[str] = None
    tipo: str
    codigo_contrato: Optional[str] = None
    contrato_nome: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    membros: List[MembroOut] = []


class ComiteResponse(BaseModel):
    success: bool = True
    data: ComiteOut


class ComiteListResponse(BaseModel):
    success: bool = True
    data: List[ComiteOut]
    pagination: Pagination


class UsuariosElegiveisResponse(BaseModel):
    success: bool = True
    data: List[UsuarioResumo]


class SuccessResponse(BaseModel):
    success: bool = True
