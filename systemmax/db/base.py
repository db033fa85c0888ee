# systemmax/db/base.py
from datetime import datetime

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


def import_models() -> None:
    """Registra todas as tabelas no metadata (usado pelo create_all)."""
    from systemmax.modules.organizacao import models as _organizacao  # noqa: F401
    from systemmax.modules.emociograma import models as _emociograma  # noqa: F401
    from systemmax.modules.comites import models as _comites  # noqa: F401
