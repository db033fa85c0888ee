# systemmax/modules/comites/models.py
from __future__ import annotations

from sqlalchemy import String, Integer, Text, ForeignKey, Index, text
from sqlalchemy.orm import Mapped, mapped_column

from systemmax.db.base import Base, TimestampMixin

TIPO_LOCAL = "local"
TIPO_CORPORATIVO = "corporativo"
TIPOS_COMITE = (TIPO_LOCAL, TIPO_CORPORATIVO)


class Comite(Base, TimestampMixin):
    """
    Comitê de boas práticas. Um único corporativo no sistema e no
    máximo um local por contrato.
    """
    __tablename__ = "boaspraticas_comite"
    __table_args__ = (
        Index(
            "uq_boaspraticas_comite_corporativo",
            "tipo",
            unique=True,
            postgresql_where=text("tipo = 'corporativo'"),
            sqlite_where=text("tipo = 'corporativo'"),
        ),
        Index(
            "uq_boaspraticas_comite_local_contrato",
            "codigo_contrato",
            unique=True,
            postgresql_where=text("tipo = 'local'"),
            sqlite_where=text("tipo = 'local'"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    nome: Mapped[str] = mapped_column(String(200), nullable=False)
    descricao: Mapped[str | None] = mapped_column(Text, nullable=True)
    tipo: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    codigo_contrato: Mapped[str | None] = mapped_column(
        ForeignKey("contratos.codigo"), nullable=True, index=True
    )
    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True)


class ComiteMembro(Base):
    __tablename__ = "boaspraticas_comite_membros"

    comite_id: Mapped[int] = mapped_column(
        ForeignKey("boaspraticas_comite.id", ondelete="CASCADE"), primary_key=True
    )
    matricula: Mapped[int] = mapped_column(ForeignKey("usuarios.matricula"), primary_key=True)
