from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from systemmax.core.dependencies import get_db, get_current_user, get_gestor
from systemmax.db.session import executar
from systemmax.modules.organizacao.models import Usuario
from systemmax.services.alertas import (
    PERIODOS_DIAS,
    AlertaJaResolvido,
    abrir_alerta,
    escalar_alerta,
    estatisticas_alertas,
    resolver_alerta,
)
from systemmax.services.hierarquia import carregar_usuario, matriculas_do_escopo
from systemmax.services.notificacoes import DespachanteNotificacoes
from systemmax.services.politica import (
    Negado,
    autorizar_tratativa,
    eh_gestor,
    exerce_lideranca,
    exerce_supervisao,
    requer_alerta,
)
from systemmax.utils.paginacao import offset, pagination

from .models import (
    AlertaEmociograma,
    Emociograma,
    NotificacaoEmociograma,
    TratativaEmociograma,
    ESTADOS_EMOCIONAIS,
    TIPOS_TRATATIVA,
)
from .schemas import (
    AlertaListResponse,
    AlertaResponse,
    DespachoResponse,
    EmociogramaCreate,
    EmociogramaCreateResponse,
    EmociogramaListResponse,
    EmociogramaOut,
    EstatisticasResponse,
    NotificacaoListResponse,
    NotificacaoResponse,
    TratativaCreate,
    TratativaListResponse,
    TratativaResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

INTERVALO_REGISTRO = timedelta(hours=8)

MENSAGEM_CRITICO = "Estado crítico detectado. É importante conversar com sua liderança antes de iniciar atividades."
MENSAGEM_ATENCAO = "Estado de atenção detectado. Considere conversar com sua liderança se necessário."


def get_despachante() -> DespachanteNotificacoes:
    return DespachanteNotificacoes()


# ------------------------ helpers ------------------------
def _pode_ver_alertas(user: Usuario) -> bool:
    return eh_gestor(user) or exerce_lideranca(user) or exerce_supervisao(user)


async def _escopo_ou_none(db: AsyncSession, user: Usuario, todos: bool) -> Optional[list[int]]:
    """
    Matrículas visíveis para `user`, ou None quando não há restrição
    (Admin/Editor pedindo `all=true`).
    """
    if eh_gestor(user) and todos:
        return None
    return await matriculas_do_escopo(db, user)


async def _get_alerta_or_404(db: AsyncSession, alerta_id: int) -> AlertaEmociograma:
    res = await executar(db, select(AlertaEmociograma).where(AlertaEmociograma.id == alerta_id))
    alerta = res.scalar_one_or_none()
    if not alerta:
        raise HTTPException(status_code=404, detail="Alerta não encontrado")
    return alerta


async def _autorizar_ou_403(db: AsyncSession, user: Usuario, alerta: AlertaEmociograma) -> None:
    alvo = await carregar_usuario(db, alerta.usuario_matricula)
    if not alvo:
        raise HTTPException(status_code=404, detail="Usuário não encontrado")
    decisao = autorizar_tratativa(user, alvo)
    if isinstance(decisao, Negado):
        raise HTTPException(status_code=403, detail=decisao.motivo)


# ------------------------ emociograma ------------------------
@router.post("", response_model=EmociogramaCreateResponse)
async def registrar_emociograma(
    payload: EmociogramaCreate,
    db: AsyncSession = Depends(get_db),
    user: Usuario = Depends(get_current_user),
    despachante: DespachanteNotificacoes = Depends(get_despachante),
):
    if payload.estado_emocional not in ESTADOS_EMOCIONAIS:
        raise HTTPException(status_code=400, detail="Estado emocional inválido")

    limite = datetime.now(timezone.utc) - INTERVALO_REGISTRO
    recente = (await executar(
        db,
        select(Emociograma.id).where(
            Emociograma.matricula_usuario == user.matricula,
            Emociograma.data_registro >= limite,
        ).limit(1),
    )).scalar()
    if recente is not None:
        raise HTTPException(status_code=400, detail="Você só pode registrar um emociograma a cada 8 horas")

    emociograma = Emociograma(
        matricula_usuario=user.matricula,
        estado_emocional=payload.estado_emocional,
        observacoes=(payload.observacoes or "").strip() or None,
    )
    db.add(emociograma)
    await db.commit()
    registro = EmociogramaOut.model_validate(emociograma)

    aviso = None
    if requer_alerta(registro.estado_emocional):
        alerta = None
        try:
            alerta = await abrir_alerta(db, emociograma, user)
            if alerta is not None:
                await escalar_alerta(db, alerta, despachante=despachante)
        except (SQLAlchemyError, TimeoutError):
            # o registro (e o alerta, se já commitado) fica; só o escalonamento é abortado
            logger.exception("ESCALONAMENTO_ABORTADO", extra={"emociograma_id": registro.id})
            await db.rollback()

        critico = registro.estado_emocional == "pessimo"
        aviso = {
            "tipo": "critico" if critico else "atencao",
            "mensagem": MENSAGEM_CRITICO if critico else MENSAGEM_ATENCAO,
            "alertaCriado": alerta is not None,
        }

    return {
        "success": True,
        "message": "Emociograma registrado com sucesso",
        "data": registro,
        "alerta": aviso,
    }


@router.get("", response_model=EmociogramaListResponse)
async def list_emociogramas(
    meus: bool = Query(False),
    periodo: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
    user: Usuario = Depends(get_current_user),
):
    filtros = []
    if periodo in PERIODOS_DIAS:
        filtros.append(Emociograma.data_registro >= datetime.now(timezone.utc) - timedelta(days=PERIODOS_DIAS[periodo]))

    if meus or not _pode_ver_alertas(user):
        filtros.append(Emociograma.matricula_usuario == user.matricula)
    elif not eh_gestor(user):
        filtros.append(Emociograma.matricula_usuario.in_(await matriculas_do_escopo(db, user)))

    total = (await executar(db, select(func.count(Emociograma.id)).where(*filtros))).scalar_one()
    rows = (await executar(
        db,
        select(Emociograma)
        .where(*filtros)
        .order_by(Emociograma.data_registro.desc(), Emociograma.id.desc())
        .offset(offset(page, limit))
        .limit(limit)
    )).scalars().all()

    return {"success": True, "data": rows, "pagination": pagination(page, limit, int(total))}


# ------------------------ alertas ------------------------
@router.get("/alertas", response_model=AlertaListResponse)
async def list_alertas(
    resolvido: Optional[bool] = Query(None),
    todos: bool = Query(False, alias="all"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
    user: Usuario = Depends(get_current_user),
):
    if not _pode_ver_alertas(user):
        raise HTTPException(
            status_code=403,
            detail="Acesso negado. Apenas líderes e supervisores podem visualizar alertas.",
        )

    filtros = []
    if resolvido is not None:
        filtros.append(AlertaEmociograma.resolvido == resolvido)

    escopo = await _escopo_ou_none(db, user, todos)
    if escopo is not None:
        if not escopo:
            return {"success": True, "data": [], "pagination": pagination(page, limit, 0)}
        filtros.append(AlertaEmociograma.usuario_matricula.in_(escopo))

    total = (await executar(db, select(func.count(AlertaEmociograma.id)).where(*filtros))).scalar_one()
    rows = (await executar(
        db,
        select(AlertaEmociograma)
        .where(*filtros)
        .order_by(AlertaEmociograma.created_at.desc(), AlertaEmociograma.id.desc())
        .offset(offset(page, limit))
        .limit(limit)
    )).scalars().all()

    return {"success": True, "data": rows, "pagination": pagination(page, limit, int(total))}


@router.get("/alertas/estatisticas", response_model=EstatisticasResponse)
async def get_estatisticas(
    periodo: str = Query("30d"),
    db: AsyncSession = Depends(get_db),
    user: Usuario = Depends(get_current_user),
):
    if not _pode_ver_alertas(user):
        raise HTTPException(status_code=403, detail="Acesso negado")
    if periodo not in PERIODOS_DIAS:
        raise HTTPException(status_code=400, detail="Período inválido (7d, 30d ou 90d)")

    stats = await estatisticas_alertas(db, periodo)
    return {
        "success": True,
        "data": {
            "totalAlertas": stats.total_alertas,
            "alertasRegular": stats.alertas_regular,
            "alertasPessimo": stats.alertas_pessimo,
            "alertasResolvidos": stats.alertas_resolvidos,
            "alertasPendentes": stats.alertas_pendentes,
        },
    }


@router.post("/alertas/{alerta_id}/resolver", response_model=AlertaResponse)
async def post_resolver_alerta(
    alerta_id: int,
    db: AsyncSession = Depends(get_db),
    user: Usuario = Depends(get_current_user),
):
    alerta = await _get_alerta_or_404(db, alerta_id)
    await _autorizar_ou_403(db, user, alerta)

    try:
        await resolver_alerta(db, alerta)
    except AlertaJaResolvido:
        raise HTTPException(status_code=409, detail="Alerta já resolvido")
    await db.commit()

    return {"success": True, "message": "Alerta resolvido", "data": alerta}


@router.post("/alertas/{alerta_id}/notificar", response_model=DespachoResponse)
async def post_notificar_alerta(
    alerta_id: int,
    db: AsyncSession = Depends(get_db),
    user: Usuario = Depends(get_gestor),
    despachante: DespachanteNotificacoes = Depends(get_despachante),
):
    alerta = await _get_alerta_or_404(db, alerta_id)
    if alerta.notificado:
        raise HTTPException(status_code=409, detail="Alerta já notificado")

    resultado = await escalar_alerta(db, alerta, despachante=despachante)
    if resultado is None:
        raise HTTPException(status_code=409, detail="Alerta já notificado")
    return {
        "success": True,
        "data": {
            "alerta_id": alerta.id,
            "notificacoes_gravadas": len(resultado.gravadas),
            "falhas": len(resultado.falhas),
            "notificado": alerta.notificado,
        },
    }


# ------------------------ tratativas ------------------------
@router.get("/tratativas", response_model=TratativaListResponse)
async def list_tratativas(
    alerta_id: Optional[int] = Query(None),
    data_inicio: Optional[date] = Query(None),
    data_fim: Optional[date] = Query(None),
    todos: bool = Query(False, alias="all"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
    user: Usuario = Depends(get_current_user),
):
    if not _pode_ver_alertas(user):
        raise HTTPException(
            status_code=403,
            detail="Acesso negado. Apenas líderes e supervisores podem visualizar tratativas.",
        )

    filtros = []
    if alerta_id is not None:
        filtros.append(TratativaEmociograma.alerta_id == alerta_id)
    if data_inicio:
        filtros.append(TratativaEmociograma.data_tratativa >= datetime.combine(data_inicio, time.min, tzinfo=timezone.utc))
    if data_fim:
        filtros.append(TratativaEmociograma.data_tratativa <= datetime.combine(data_fim, time.max, tzinfo=timezone.utc))

    escopo = await _escopo_ou_none(db, user, todos)
    if escopo is not None:
        if not escopo:
            return {"success": True, "data": [], "pagination": pagination(page, limit, 0)}
        alertas_visiveis = select(AlertaEmociograma.id).where(AlertaEmociograma.usuario_matricula.in_(escopo))
        filtros.append(TratativaEmociograma.alerta_id.in_(alertas_visiveis))

    total = (await executar(db, select(func.count(TratativaEmociograma.id)).where(*filtros))).scalar_one()
    rows = (await executar(
        db,
        select(TratativaEmociograma)
        .where(*filtros)
        .order_by(TratativaEmociograma.created_at.desc(), TratativaEmociograma.id.desc())
        .offset(offset(page, limit))
        .limit(limit)
    )).scalars().all()

    return {"success": True, "data": rows, "pagination": pagination(page, limit, int(total))}


@router.post("/tratativas", response_model=TratativaResponse, status_code=status.HTTP_201_CREATED)
async def create_tratativa(
    payload: TratativaCreate,
    db: AsyncSession = Depends(get_db),
    user: Usuario = Depends(get_current_user),
):
    descricao = (payload.descricao or "").strip()
    acao_tomada = (payload.acao_tomada or "").strip()
    if not payload.alerta_id or not payload.tipo_tratativa or not descricao or not acao_tomada:
        raise HTTPException(
            status_code=400,
            detail="Campos obrigatórios: alerta_id, tipo_tratativa, descricao, acao_tomada",
        )
    if payload.tipo_tratativa not in TIPOS_TRATATIVA:
        raise HTTPException(status_code=400, detail="Tipo de tratativa inválido")

    alerta = await _get_alerta_or_404(db, payload.alerta_id)
    await _autorizar_ou_403(db, user, alerta)

    try:
        await resolver_alerta(db, alerta)
    except AlertaJaResolvido:
        raise HTTPException(status_code=409, detail="Alerta já resolvido")

    tratativa = TratativaEmociograma(
        alerta_id=alerta.id,
        emociograma_id=alerta.emociograma_id,
        matricula_tratador=user.matricula,
        tipo_tratativa=payload.tipo_tratativa,
        descricao=descricao,
        acao_tomada=acao_tomada,
    )
    db.add(tratativa)
    await db.commit()

    logger.info(
        "TRATATIVA_CRIADA",
        extra={"tratativa_id": tratativa.id, "alerta_id": alerta.id, "tratador": user.matricula},
    )
    return {"success": True, "message": "Tratativa criada com sucesso", "data": tratativa}


# ------------------------ notificações ------------------------
@router.get("/notificacoes", response_model=NotificacaoListResponse)
async def list_notificacoes(
    lida: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    user: Usuario = Depends(get_current_user),
):
    filtros = [NotificacaoEmociograma.destinatario_matricula == user.matricula]
    if lida is not None:
        filtros.append(NotificacaoEmociograma.lida == lida)

    total = (await executar(db, select(func.count(NotificacaoEmociograma.id)).where(*filtros))).scalar_one()
    rows = (await executar(
        db,
        select(NotificacaoEmociograma)
        .where(*filtros)
        .order_by(NotificacaoEmociograma.created_at.desc(), NotificacaoEmociograma.id.desc())
        .offset(offset(page, limit))
        .limit(limit)
    )).scalars().all()

    return {"success": True, "data": rows, "pagination": pagination(page, limit, int(total))}


@router.patch("/notificacoes/{notificacao_id}/lida", response_model=NotificacaoResponse)
async def marcar_lida(
    notificacao_id: int,
    db: AsyncSession = Depends(get_db),
    user: Usuario = Depends(get_current_user),
):
    res = await executar(db, select(NotificacaoEmociograma).where(NotificacaoEmociograma.id == notificacao_id))
    notificacao = res.scalar_one_or_none()
    if not notificacao:
        raise HTTPException(status_code=404, detail="Notificação não encontrada")
    if notificacao.destinatario_matricula != user.matricula:
        raise HTTPException(status_code=403, detail="Notificação de outro destinatário")

    # único campo mutável da notificação
    if not notificacao.lida:
        notificacao.lida = True
        await db.commit()

    return {"success": True, "data": notificacao}
