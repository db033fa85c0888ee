"""Regras puras de escalonamento: gatilho, destinatários e autorização de tratativa."""
from datetime import datetime, timezone

import pytest

from systemmax.modules.organizacao.models import Usuario
from systemmax.services.hierarquia import Responsavel, Responsaveis
from systemmax.services.politica import (
    MOTIVO_EQUIPE,
    MOTIVO_LETRA,
    MOTIVO_SEM_PERMISSAO,
    TIPO_LIDER,
    TIPO_SUPERVISOR,
    Autorizado,
    Negado,
    autorizar_tratativa,
    montar_notificacoes,
    requer_alerta,
)

DATA = datetime(2026, 10, 18, 7, 30, tzinfo=timezone.utc)

CARLOS = Responsavel(matricula=2002, nome="Carlos", email="carlos@systemmax.local")
BEA = Responsavel(matricula=3003, nome="Bea")


def _usuario(matricula, role="Usuario", funcao=None, equipe_id=None, letra_id=None):
    return Usuario(
        matricula=matricula,
        nome=f"U{matricula}",
        role=role,
        funcao=funcao,
        status="ativo",
        equipe_id=equipe_id,
        letra_id=letra_id,
    )


def _montar(responsaveis):
    return montar_notificacoes(
        usuario_afetado="Ana",
        estado_emocional="pessimo",
        observacoes="Relatou cansaço extremo",
        data_registro=DATA,
        responsaveis=responsaveis,
    )


@pytest.mark.parametrize(
    "estado, esperado",
    [("bem", False), ("regular", True), ("pessimo", True), ("", False), ("Pessimo", False)],
)
def test_requer_alerta(estado, esperado):
    assert requer_alerta(estado) is esperado


class TestMontarNotificacoes:
    def test_lider_e_supervisor_distintos(self):
        rascunhos = _montar(Responsaveis(lider=CARLOS, supervisor=BEA))

        assert [(r.destinatario_matricula, r.tipo) for r in rascunhos] == [
            (2002, TIPO_LIDER),
            (3003, TIPO_SUPERVISOR),
        ]
        for r in rascunhos:
            assert r.usuario_afetado == "Ana"
            assert r.estado_emocional == "pessimo"
            assert r.observacoes == "Relatou cansaço extremo"
            assert r.data_registro == DATA

    def test_supervisor_igual_ao_lider_gera_um_rascunho(self):
        rascunhos = _montar(Responsaveis(lider=CARLOS, supervisor=CARLOS))

        assert len(rascunhos) == 1
        assert rascunhos[0].tipo == TIPO_LIDER
        assert rascunhos[0].destinatario_matricula == 2002

    def test_somente_supervisor(self):
        rascunhos = _montar(Responsaveis(lider=None, supervisor=BEA))
        assert [(r.destinatario_matricula, r.tipo) for r in rascunhos] == [(3003, TIPO_SUPERVISOR)]

    def test_sem_responsaveis(self):
        assert _montar(Responsaveis()) == []

    def test_rascunho_imutavel(self):
        rascunho = _montar(Responsaveis(lider=CARLOS))[0]
        with pytest.raises(AttributeError):
            rascunho.tipo = TIPO_SUPERVISOR


class TestAutorizarTratativa:
    def test_admin_e_editor_sempre_autorizados(self):
        alvo = _usuario(4004, equipe_id=2, letra_id=2)
        for role in ("Admin", "Editor"):
            assert autorizar_tratativa(_usuario(9001, role=role), alvo) == Autorizado()

    def test_lider_da_mesma_letra(self):
        lider = _usuario(2002, role="Lider", letra_id=1)
        assert isinstance(autorizar_tratativa(lider, _usuario(1001, letra_id=1)), Autorizado)

    def test_lider_de_outra_letra(self):
        lider = _usuario(2002, role="Lider", letra_id=1)
        assert autorizar_tratativa(lider, _usuario(4004, letra_id=2)) == Negado(MOTIVO_LETRA)

    def test_lider_reconhecido_pela_funcao(self):
        lider = _usuario(2002, role="Usuario", funcao="LÍDER de Turno", letra_id=1)
        assert isinstance(autorizar_tratativa(lider, _usuario(1001, letra_id=1)), Autorizado)

    def test_lider_sem_letra_nao_casa_com_alvo_sem_letra(self):
        lider = _usuario(2002, role="Lider", letra_id=None)
        assert autorizar_tratativa(lider, _usuario(1001, letra_id=None)) == Negado(MOTIVO_LETRA)

    def test_lider_com_equipe_igual_mas_letra_diferente(self):
        # a regra de liderança decide antes da de supervisão
        lider = _usuario(2002, role="Lider", funcao="Supervisor interino", equipe_id=1, letra_id=1)
        alvo = _usuario(1001, equipe_id=1, letra_id=2)
        assert autorizar_tratativa(lider, alvo) == Negado(MOTIVO_LETRA)

    def test_supervisor_da_mesma_equipe(self):
        bea = _usuario(3003, role="Supervisor", equipe_id=1)
        assert isinstance(autorizar_tratativa(bea, _usuario(1001, equipe_id=1)), Autorizado)

    def test_supervisor_de_outra_equipe(self):
        bea = _usuario(3003, role="Supervisor", funcao="Supervisora de Produção", equipe_id=1)
        diego = _usuario(4004, equipe_id=2)

        decisao = autorizar_tratativa(bea, diego)

        assert decisao == Negado(MOTIVO_EQUIPE)
        assert decisao.autorizado is False

    def test_usuario_comum_negado(self):
        ana = _usuario(1001, funcao="Operadora", equipe_id=1, letra_id=1)
        assert autorizar_tratativa(ana, _usuario(1002, equipe_id=1, letra_id=1)) == Negado(MOTIVO_SEM_PERMISSAO)
