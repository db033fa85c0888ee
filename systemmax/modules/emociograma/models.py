from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    String,
    Integer,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column

from systemmax.db.base import Base

ESTADOS_EMOCIONAIS = ("bem", "regular", "pessimo")
ESTADOS_COM_ALERTA = ("regular", "pessimo")
TIPOS_TRATATIVA = ("conversa", "encaminhamento", "acompanhamento", "orientacao")


def agora_utc() -> datetime:
    return datetime.now(timezone.utc)


class Emociograma(Base):
    __tablename__ = "emociogramas"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    matricula_usuario: Mapped[int] = mapped_column(ForeignKey("usuarios.matricula"), index=True)
    estado_emocional: Mapped[str] = mapped_column(String(16), nullable=False)
    observacoes: Mapped[str | None] = mapped_column(Text, nullable=True)
    data_registro: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=agora_utc, index=True)


class AlertaEmociograma(Base):
    """
    Alerta gerado por um emociograma regular/péssimo.
    Nome, equipe, letra e observações são cópias do momento da criação;
    o registro nunca é apagado, só recebe `notificado` e `resolvido`.
    """
    __tablename__ = "alertas_emociograma"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    emociograma_id: Mapped[int | None] = mapped_column(ForeignKey("emociogramas.id"), nullable=True)

    usuario_matricula: Mapped[int] = mapped_column(Integer, index=True)
    usuario_nome: Mapped[str] = mapped_column(String(200))
    equipe: Mapped[str | None] = mapped_column(String(120), nullable=True)
    letra: Mapped[str | None] = mapped_column(String(20), nullable=True)
    estado_emocional: Mapped[str] = mapped_column(String(16))
    observacoes: Mapped[str | None] = mapped_column(Text, nullable=True)
    data_registro: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    lider_matricula: Mapped[int | None] = mapped_column(Integer, nullable=True)
    supervisor_matricula: Mapped[int | None] = mapped_column(Integer, nullable=True)

    notificado: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    resolvido: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    data_resolucao: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=agora_utc)

    __table_args__ = (
        Index("ix_alertas_emociograma_resolvido_created", "resolvido", "created_at"),
    )


class NotificacaoEmociograma(Base):
    """Uma linha por (alerta, destinatário). Só `lida` muda depois de criada."""
    __tablename__ = "notificacoes_emociograma"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    alerta_id: Mapped[int | None] = mapped_column(ForeignKey("alertas_emociograma.id"), nullable=True, index=True)
    destinatario_matricula: Mapped[int] = mapped_column(Integer, index=True)
    tipo: Mapped[str] = mapped_column(String(16))  # lider | supervisor

    usuario_afetado: Mapped[str] = mapped_column(String(200))
    estado_emocional: Mapped[str] = mapped_column(String(16))
    observacoes: Mapped[str | None] = mapped_column(Text, nullable=True)
    data_registro: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    lida: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=agora_utc)


class TratativaEmociograma(Base):
    __tablename__ = "tratativas_emociograma"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    alerta_id: Mapped[int] = mapped_column(ForeignKey("alertas_emociograma.id"), index=True)
    emociograma_id: Mapped[int | None] = mapped_column(ForeignKey("emociogramas.id"), nullable=True)
    matricula_tratador: Mapped[int] = mapped_column(Integer, index=True)

    tipo_tratativa: Mapped[str] = mapped_column(String(32))
    descricao: Mapped[str] = mapped_column(Text)
    acao_tomada: Mapped[str] = mapped_column(Text)

    data_tratativa: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=agora_utc)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=agora_utc)
