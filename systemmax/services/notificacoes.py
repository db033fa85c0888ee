# systemmax/services/notificacoes.py
"""
Despacho de notificações de alerta.

Cada destinatário é gravado de forma independente (um SAVEPOINT por
linha): a falha de um não desfaz nem bloqueia os demais. `despachar` só
grava; os canais externos são acionados por `entregar`, depois do commit
das linhas. Falha de canal é registrada e não afeta a linha persistida.

O despacho não é idempotente. Quem chama garante no máximo um despacho
por alerta usando a flag `notificado` (ver services/alertas.py).
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from systemmax.core.config import settings
from systemmax.integrations.canais import CanalNotificacao, canais_configurados
from systemmax.modules.emociograma.models import NotificacaoEmociograma
from .politica import RascunhoNotificacao

logger = logging.getLogger(__name__)


@dataclass
class ResultadoDespacho:
    gravadas: list[NotificacaoEmociograma] = field(default_factory=list)
    falhas: list[RascunhoNotificacao] = field(default_factory=list)
    # rascunhos gravados, na ordem, aguardando os canais
    a_entregar: list[RascunhoNotificacao] = field(default_factory=list)

    @property
    def algum_sucesso(self) -> bool:
        return bool(self.gravadas)


def _payload(rascunho: RascunhoNotificacao, alerta_id: Optional[int]) -> dict:
    return {
        "alerta_id": alerta_id,
        "tipo": rascunho.tipo,
        "destinatario_nome": rascunho.destinatario_nome,
        "destinatario_email": rascunho.destinatario_email,
        "usuario_afetado": rascunho.usuario_afetado,
        "estado_emocional": rascunho.estado_emocional,
        "observacoes": rascunho.observacoes,
        "data_registro": rascunho.data_registro.isoformat(),
    }


class DespachanteNotificacoes:
    def __init__(self, canais: Optional[Sequence[CanalNotificacao]] = None):
        self.canais = list(canais) if canais is not None else canais_configurados()

    async def _gravar(
        self,
        db: AsyncSession,
        alerta_id: Optional[int],
        rascunho: RascunhoNotificacao,
    ) -> NotificacaoEmociograma:
        notificacao = NotificacaoEmociograma(
            alerta_id=alerta_id,
            destinatario_matricula=rascunho.destinatario_matricula,
            tipo=rascunho.tipo,
            usuario_afetado=rascunho.usuario_afetado,
            estado_emocional=rascunho.estado_emocional,
            observacoes=rascunho.observacoes,
            data_registro=rascunho.data_registro,
            lida=False,
        )
        async with db.begin_nested():
            db.add(notificacao)
            await asyncio.wait_for(db.flush(), timeout=settings.DB_TIMEOUT_SECONDS)
        return notificacao

    async def _entregar(self, rascunho: RascunhoNotificacao, alerta_id: Optional[int]) -> None:
        payload = _payload(rascunho, alerta_id)
        for canal in self.canais:
            try:
                await canal.enviar(rascunho.destinatario_matricula, payload)
            except Exception:
                # entrega é best-effort; a linha gravada é a fonte da verdade
                logger.exception(
                    "CANAL_NOTIFICACAO_FALHOU",
                    extra={"canal": canal.nome, "destinatario": rascunho.destinatario_matricula, "alerta_id": alerta_id},
                )

    async def despachar(
        self,
        db: AsyncSession,
        alerta_id: Optional[int],
        rascunhos: Iterable[RascunhoNotificacao],
    ) -> ResultadoDespacho:
        """Grava as linhas na transação de `db`. Não faz commit nem aciona canais."""
        resultado = ResultadoDespacho()
        for rascunho in rascunhos:
            try:
                notificacao = await self._gravar(db, alerta_id, rascunho)
            except Exception:
                logger.exception(
                    "NOTIFICACAO_FALHOU",
                    extra={"destinatario": rascunho.destinatario_matricula, "tipo": rascunho.tipo, "alerta_id": alerta_id},
                )
                resultado.falhas.append(rascunho)
                continue

            resultado.gravadas.append(notificacao)
            resultado.a_entregar.append(rascunho)

        return resultado

    async def entregar(self, resultado: ResultadoDespacho, alerta_id: Optional[int]) -> None:
        """Aciona os canais para as linhas já commitadas."""
        for rascunho in resultado.a_entregar:
            await self._entregar(rascunho, alerta_id)
