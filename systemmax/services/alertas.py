# systemmax/services/alertas.py
"""
Ciclo de vida do alerta de emociograma: criação, escalonamento
(responsáveis -> rascunhos -> despacho, nesta ordem), resolução e
estatísticas.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from systemmax.db.session import executar
from systemmax.modules.emociograma.models import AlertaEmociograma, Emociograma
from systemmax.modules.organizacao.models import Usuario
from .hierarquia import Responsaveis, buscar_responsaveis
from .notificacoes import DespachanteNotificacoes, ResultadoDespacho
from .politica import montar_notificacoes, requer_alerta

logger = logging.getLogger(__name__)

PERIODOS_DIAS = {"7d": 7, "30d": 30, "90d": 90}


class AlertaJaResolvido(Exception):
    pass


async def _abrir(
    db: AsyncSession,
    emociograma: Emociograma,
    usuario: Usuario,
) -> tuple[AlertaEmociograma, Responsaveis]:
    responsaveis = await buscar_responsaveis(db, usuario.equipe_id, usuario.letra_id)

    alerta = AlertaEmociograma(
        emociograma_id=emociograma.id,
        usuario_matricula=usuario.matricula,
        usuario_nome=usuario.nome,
        equipe=usuario.equipe.equipe if usuario.equipe else None,
        letra=usuario.letra.letra if usuario.letra else None,
        estado_emocional=emociograma.estado_emocional,
        observacoes=emociograma.observacoes,
        data_registro=emociograma.data_registro,
        lider_matricula=responsaveis.lider.matricula if responsaveis.lider else None,
        supervisor_matricula=responsaveis.supervisor.matricula if responsaveis.supervisor else None,
        notificado=False,
    )
    db.add(alerta)
    await db.commit()

    logger.info(
        "ALERTA_CRIADO",
        extra={
            "alerta_id": alerta.id,
            "matricula": usuario.matricula,
            "estado": alerta.estado_emocional,
            "lider": alerta.lider_matricula,
            "supervisor": alerta.supervisor_matricula,
        },
    )
    return alerta, responsaveis


async def abrir_alerta(
    db: AsyncSession,
    emociograma: Emociograma,
    usuario: Usuario,
) -> Optional[AlertaEmociograma]:
    """Grava (commit) o alerta de um emociograma regular/péssimo, sem escalonar."""
    if not requer_alerta(emociograma.estado_emocional):
        return None
    alerta, _ = await _abrir(db, emociograma, usuario)
    return alerta


async def criar_alerta(
    db: AsyncSession,
    emociograma: Emociograma,
    usuario: Usuario,
    despachante: Optional[DespachanteNotificacoes] = None,
) -> Optional[AlertaEmociograma]:
    """
    Cria e escalona o alerta de um emociograma regular/péssimo.
    Para outros estados não cria nada e devolve None.
    """
    if not requer_alerta(emociograma.estado_emocional):
        return None

    alerta, responsaveis = await _abrir(db, emociograma, usuario)
    await escalar_alerta(db, alerta, despachante=despachante, responsaveis=responsaveis)
    return alerta


def _marcar_notificado(alerta_id: int, valor: bool, *, somente_pendente: bool = False):
    stmt = update(AlertaEmociograma).where(AlertaEmociograma.id == alerta_id)
    if somente_pendente:
        stmt = stmt.where(AlertaEmociograma.notificado.is_(False))
    return stmt.values(notificado=valor).execution_options(synchronize_session=False)


async def escalar_alerta(
    db: AsyncSession,
    alerta: AlertaEmociograma,
    despachante: Optional[DespachanteNotificacoes] = None,
    responsaveis: Optional[Responsaveis] = None,
) -> Optional[ResultadoDespacho]:
    """
    Despacha as notificações de `alerta` uma única vez.

    O alerta é reservado com um UPDATE condicional (`notificado` false ->
    true); quem não consegue a reserva devolve None sem despachar. As linhas
    e a flag são commitadas juntas e só então os canais são acionados.
    Se nenhuma notificação for gravada, `notificado` volta a false.
    Sem `responsaveis`, a hierarquia é consultada a partir do colaborador.
    """
    if alerta.notificado:
        logger.info("ALERTA_JA_NOTIFICADO", extra={"alerta_id": alerta.id})
        return None

    reserva = await executar(db, _marcar_notificado(alerta.id, True, somente_pendente=True))
    if reserva.rowcount == 0:
        set_committed_value(alerta, "notificado", True)
        logger.info("ALERTA_JA_NOTIFICADO", extra={"alerta_id": alerta.id})
        return None

    if responsaveis is None:
        res = await executar(db, select(Usuario).where(Usuario.matricula == alerta.usuario_matricula))
        usuario = res.scalar_one_or_none()
        responsaveis = await buscar_responsaveis(
            db,
            usuario.equipe_id if usuario else None,
            usuario.letra_id if usuario else None,
        )

    rascunhos = montar_notificacoes(
        usuario_afetado=alerta.usuario_nome,
        estado_emocional=alerta.estado_emocional,
        observacoes=alerta.observacoes,
        data_registro=alerta.data_registro,
        responsaveis=responsaveis,
    )

    despachante = despachante or DespachanteNotificacoes()
    resultado = await despachante.despachar(db, alerta.id, rascunhos)

    if not resultado.algum_sucesso:
        await executar(db, _marcar_notificado(alerta.id, False))
    await db.commit()
    set_committed_value(alerta, "notificado", resultado.algum_sucesso)

    logger.info(
        "ALERTA_ESCALONADO",
        extra={
            "alerta_id": alerta.id,
            "gravadas": len(resultado.gravadas),
            "falhas": len(resultado.falhas),
        },
    )

    await despachante.entregar(resultado, alerta.id)
    return resultado


async def resolver_alerta(db: AsyncSession, alerta: AlertaEmociograma) -> AlertaEmociograma:
    """
    Marca o alerta como resolvido com um UPDATE condicional; quem chama faz o
    commit. Duas resoluções concorrentes: a segunda recebe AlertaJaResolvido.
    """
    if alerta.resolvido:
        raise AlertaJaResolvido(alerta.id)

    agora = datetime.now(timezone.utc)
    res = await executar(
        db,
        update(AlertaEmociograma)
        .where(AlertaEmociograma.id == alerta.id, AlertaEmociograma.resolvido.is_(False))
        .values(resolvido=True, data_resolucao=agora)
        .execution_options(synchronize_session=False),
    )
    set_committed_value(alerta, "resolvido", True)
    if res.rowcount == 0:
        raise AlertaJaResolvido(alerta.id)
    set_committed_value(alerta, "data_resolucao", agora)
    return alerta


@dataclass(frozen=True)
class EstatisticasAlertas:
    total_alertas: int
    alertas_regular: int
    alertas_pessimo: int
    alertas_resolvidos: int
    alertas_pendentes: int


async def estatisticas_alertas(db: AsyncSession, periodo: str = "30d") -> EstatisticasAlertas:
    dias = PERIODOS_DIAS.get(periodo, 30)
    inicio = datetime.now(timezone.utc) - timedelta(days=dias)

    res = await executar(
        db,
        select(AlertaEmociograma.estado_emocional, AlertaEmociograma.resolvido)
        .where(AlertaEmociograma.created_at >= inicio),
    )
    linhas = res.all()

    return EstatisticasAlertas(
        total_alertas=len(linhas),
        alertas_regular=sum(1 for estado, _ in linhas if estado == "regular"),
        alertas_pessimo=sum(1 for estado, _ in linhas if estado == "pessimo"),
        alertas_resolvidos=sum(1 for _, resolvido in linhas if resolvido),
        alertas_pendentes=sum(1 for _, resolvido in linhas if not resolvido),
    )
