from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from systemmax.utils.paginacao import Pagination


# ------------------------ emociograma ------------------------
class EmociogramaCreate(BaseModel):
    estado_emocional: str
    observacoes: Optional[str] = None


class EmociogramaOut(BaseModel):
    id: int
    matricula_usuario: int
    estado_emocional: str
    observacoes: Optional[str] = None
    data_registro: datetime

    class Config:
        from_attributes = True


class AlertaAviso(BaseModel):
    tipo: str            # critico | atencao
    mensagem: str
    alertaCriado: bool


class EmociogramaCreateResponse(BaseModel):
    success: bool = True
    message: str
    data: EmociogramaOut
    alerta: Optional[AlertaAviso] = None


class EmociogramaListResponse(BaseModel):
    success: bool = True
    data: List[EmociogramaOut]
    pagination: Pagination


# ------------------------ alertas ------------------------
class AlertaOut(BaseModel):
    id: int
    emociograma_id: Optional[int] = None
    usuario_matricula: int
    usuario_nome: str
    equipe: Optional[str] = None
    letra: Optional[str] = None
    estado_emocional: str
    observacoes: Optional[str] = None
    data_registro: datetime
    lider_matricula: Optional[int] = None
    supervisor_matricula: Optional[int] = None
    notificado: bool
    resolvido: bool
    data_resolucao: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AlertaResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: AlertaOut


class AlertaListResponse(BaseModel):
    success: bool = True
    data: List[AlertaOut]
    pagination: Pagination


class EstatisticasOut(BaseModel):
    totalAlertas: int
    alertasRegular: int
    alertasPessimo: int
    alertasResolvidos: int
    alertasPendentes: int


class EstatisticasResponse(BaseModel):
    success: bool = True
    data: EstatisticasOut


class DespachoOut(BaseModel):
    alerta_id: int
    notificacoes_gravadas: int
    falhas: int
    notificado: bool


class DespachoResponse(BaseModel):
    success: bool = True
    data: DespachoOut


# ------------------------ tratativas ------------------------
class TratativaCreate(BaseModel):
    alerta_id: Optional[int] = None
    tipo_tratativa: Optional[str] = None
    descricao: Optional[str] = None
    acao_tomada: Optional[str] = None


class TratativaOut(BaseModel):
    id: int
    alerta_id: int
    emociograma_id: Optional[int] = None
    matricula_tratador: int
    tipo_tratativa: str
    descricao: str
    acao_tomada: str
    data_tratativa: datetime

    class Config:
        from_attributes = True


class TratativaResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: TratativaOut


class TratativaListResponse(BaseModel):
    success: bool = True
    data: List[TratativaOut]
    pagination: Pagination


# ------------------------ notificações ------------------------
class NotificacaoOut(BaseModel):
    id: int
    alerta_id: Optional[int] = None
    destinatario_matricula: int
    tipo: str
    usuario_afetado: str
    estado_emocional: str
    observacoes: Optional[str] = None
    data_registro: datetime
    lida: bool
    created_at: datetime

    class Config:
        from_attributes = True


class NotificacaoResponse(BaseModel):
    success: bool = True
    data: NotificacaoOut


class NotificacaoListResponse(BaseModel):
    success: bool = True
    data: List[NotificacaoOut]
    pagination: Pagination
