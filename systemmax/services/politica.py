# systemmax/services/politica.py
"""
Regras de escalonamento: quando um emociograma vira alerta, quem recebe
a notificação e quem pode registrar a tratativa.
"""
from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Union

from systemmax.modules.emociograma.models import ESTADOS_COM_ALERTA
from systemmax.modules.organizacao.models import Usuario, ROLES_GESTAO
from .hierarquia import Responsaveis

TIPO_LIDER = "lider"
TIPO_SUPERVISOR = "supervisor"

MOTIVO_LETRA = "Líder só pode gerenciar tratativas da sua letra"
MOTIVO_EQUIPE = "Supervisor só pode gerenciar tratativas da sua equipe"
MOTIVO_SEM_PERMISSAO = "Usuário não possui permissão para gerenciar tratativas"


def requer_alerta(estado_emocional: str) -> bool:
    return estado_emocional in ESTADOS_COM_ALERTA


# ------------------------ destinatários ------------------------
@dataclass(frozen=True)
class RascunhoNotificacao:
    destinatario_matricula: int
    destinatario_nome: str
    destinatario_email: Optional[str]
    tipo: str
    usuario_afetado: str
    estado_emocional: str
    observacoes: Optional[str]
    data_registro: datetime


def montar_notificacoes(
    usuario_afetado: str,
    estado_emocional: str,
    observacoes: Optional[str],
    data_registro: datetime,
    responsaveis: Responsaveis,
) -> list[RascunhoNotificacao]:
    """
    Zero, um ou dois rascunhos: líder e supervisor.
    Se o supervisor for a mesma pessoa que o líder, só o líder é notificado.
    """
    rascunhos: list[RascunhoNotificacao] = []
    candidatos = (
        (TIPO_LIDER, responsaveis.lider),
        (TIPO_SUPERVISOR, responsaveis.supervisor),
    )
    vistos: set[int] = set()
    for tipo, responsavel in candidatos:
        if responsavel is None or responsavel.matricula in vistos:
            continue
        vistos.add(responsavel.matricula)
        rascunhos.append(
            RascunhoNotificacao(
                destinatario_matricula=responsavel.matricula,
                destinatario_nome=responsavel.nome,
                destinatario_email=responsavel.email,
                tipo=tipo,
                usuario_afetado=usuario_afetado,
                estado_emocional=estado_emocional,
                observacoes=observacoes,
                data_registro=data_registro,
            )
        )
    return rascunhos


# ------------------------ autorização de tratativa ------------------------
@dataclass(frozen=True)
class Autorizado:
    autorizado: bool = True


@dataclass(frozen=True)
class Negado:
    motivo: str
    autorizado: bool = False


Decisao = Union[Autorizado, Negado]


def _normalizar(texto: Optional[str]) -> str:
    sem_acento = unicodedata.normalize("NFKD", texto or "").encode("ascii", "ignore").decode("ascii")
    return sem_acento.lower()


def eh_gestor(usuario: Usuario) -> bool:
    return usuario.role in ROLES_GESTAO


def exerce_lideranca(usuario: Usuario) -> bool:
    return usuario.role == "Lider" or "lider" in _normalizar(usuario.funcao)


def exerce_supervisao(usuario: Usuario) -> bool:
    return usuario.role == "Supervisor" or "supervisor" in _normalizar(usuario.funcao)


def _mesmo(a, b) -> bool:
    return a is not None and a == b


def _decidir_lider(solicitante: Usuario, alvo: Usuario) -> Decisao:
    return Autorizado() if _mesmo(solicitante.letra_id, alvo.letra_id) else Negado(MOTIVO_LETRA)


def _decidir_supervisor(solicitante: Usuario, alvo: Usuario) -> Decisao:
    return Autorizado() if _mesmo(solicitante.equipe_id, alvo.equipe_id) else Negado(MOTIVO_EQUIPE)


# avaliadas em ordem; a primeira regra cujo predicado casa decide
REGRAS_TRATATIVA: tuple[tuple[Callable[[Usuario], bool], Callable[[Usuario, Usuario], Decisao]], ...] = (
    (eh_gestor, lambda solicitante, alvo: Autorizado()),
    (exerce_lideranca, _decidir_lider),
    (exerce_supervisao, _decidir_supervisor),
)


def autorizar_tratativa(solicitante: Usuario, alvo: Usuario) -> Decisao:
    for predicado, decidir in REGRAS_TRATATIVA:
        if predicado(solicitante):
            return decidir(solicitante, alvo)
    return Negado(MOTIVO_SEM_PERMISSAO)
