# systemmax/modules/organizacao/models.py
from __future__ import annotations

from sqlalchemy import String, Integer, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from systemmax.db.base import Base, TimestampMixin

ROLES_GESTAO = ("Admin", "Editor")
STATUS_ATIVO = "ativo"


class Contrato(Base):
    __tablename__ = "contratos"

    codigo: Mapped[str] = mapped_column(String(40), primary_key=True)
    nome: Mapped[str | None] = mapped_column(String(200), nullable=True)


class Equipe(Base):
    """Equipe de trabalho; no máximo um supervisor por vez."""
    __tablename__ = "equipes"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    equipe: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    supervisor: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("usuarios.matricula", ondelete="SET NULL", use_alter=True),
        nullable=True,
    )


class Letra(Base):
    """Letra (turma de turno); no máximo um líder por vez."""
    __tablename__ = "letras"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    letra: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    lider: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("usuarios.matricula", ondelete="SET NULL", use_alter=True),
        nullable=True,
    )


class Usuario(Base, TimestampMixin):
    __tablename__ = "usuarios"

    matricula: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    nome: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str | None] = mapped_column(String(200), nullable=True, index=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="Usuario")  # Admin | Editor | Usuario | Supervisor | Lider
    funcao: Mapped[str | None] = mapped_column(String(120), nullable=True)          # ex.: "Líder de Turno"
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=STATUS_ATIVO)

    equipe_id: Mapped[int | None] = mapped_column(ForeignKey("equipes.id", ondelete="SET NULL"), nullable=True, index=True)
    letra_id: Mapped[int | None] = mapped_column(ForeignKey("letras.id", ondelete="SET NULL"), nullable=True, index=True)
    contrato_raiz: Mapped[str | None] = mapped_column(ForeignKey("contratos.codigo", ondelete="SET NULL"), nullable=True, index=True)

    equipe: Mapped[Equipe | None] = relationship("Equipe", foreign_keys=[equipe_id], lazy="joined")
    letra: Mapped[Letra | None] = relationship("Letra", foreign_keys=[letra_id], lazy="joined")

    @property
    def ativo(self) -> bool:
        return self.status == STATUS_ATIVO
