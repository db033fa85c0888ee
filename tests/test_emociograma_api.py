"""Fluxo HTTP do emociograma: registro, alertas, tratativas e notificações."""
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from systemmax.main import app
from systemmax.modules.emociograma.router import get_despachante
from systemmax.services.notificacoes import DespachanteNotificacoes
from systemmax.services.politica import MOTIVO_EQUIPE, MOTIVO_SEM_PERMISSAO

from conftest import ADMIN, ANA, BEA, CARLOS, DIEGO

BASE = "/api/v1/emociograma"


class DespachanteQuebrado(DespachanteNotificacoes):
    async def despachar(self, db, alerta_id, rascunhos):
        raise OperationalError("INSERT", {}, Exception("conexão perdida"))


async def _registrar(client, headers, estado, observacoes=None):
    r = await client.post(BASE, json={"estado_emocional": estado, "observacoes": observacoes}, headers=headers)
    assert r.status_code == 200, r.text
    return r.json()


async def _alertas_de(client, headers, matricula):
    r = await client.get(f"{BASE}/alertas", params={"all": "true"}, headers=headers)
    assert r.status_code == 200, r.text
    return [a for a in r.json()["data"] if a["usuario_matricula"] == matricula]


class TestAutenticacao:
    @pytest.mark.asyncio
    async def test_sem_token(self, client):
        r = await client.get(BASE)
        assert r.status_code == 401
        assert r.json() == {"success": False, "error": "Token de autorização não fornecido"}

    @pytest.mark.asyncio
    async def test_token_invalido(self, client):
        r = await client.get(BASE, headers={"Authorization": "Bearer nao-e-um-jwt"})
        assert r.status_code == 401
        assert r.json()["error"] == "Token inválido ou expirado"

    @pytest.mark.asyncio
    async def test_usuario_inativo(self, client, token):
        r = await client.get(BASE, headers=token(8008))
        assert r.status_code == 401


class TestRegistro:
    @pytest.mark.asyncio
    async def test_pessimo_gera_alerta_critico_e_notifica_responsaveis(self, client, token):
        body = await _registrar(client, token(ANA), "pessimo", "Relatou cansaço extremo")

        assert body["success"] is True
        assert body["data"]["estado_emocional"] == "pessimo"
        assert body["alerta"]["tipo"] == "critico"
        assert body["alerta"]["alertaCriado"] is True

        r = await client.get(f"{BASE}/notificacoes", headers=token(CARLOS))
        notificacoes = r.json()["data"]
        assert [(n["tipo"], n["usuario_afetado"]) for n in notificacoes] == [("lider", "Ana")]

        r = await client.get(f"{BASE}/notificacoes", headers=token(BEA))
        assert [n["tipo"] for n in r.json()["data"]] == ["supervisor"]

        alerta = (await _alertas_de(client, token(ADMIN), ANA))[0]
        assert alerta["notificado"] is True
        assert alerta["lider_matricula"] == CARLOS
        assert alerta["supervisor_matricula"] == BEA

    @pytest.mark.asyncio
    async def test_regular_gera_aviso_de_atencao(self, client, token):
        body = await _registrar(client, token(DIEGO), "regular")
        assert body["alerta"]["tipo"] == "atencao"

    @pytest.mark.asyncio
    async def test_bem_nao_gera_alerta(self, client, token):
        body = await _registrar(client, token(ANA), "bem")
        assert body["alerta"] is None
        assert await _alertas_de(client, token(ADMIN), ANA) == []

    @pytest.mark.asyncio
    async def test_estado_invalido(self, client, token):
        r = await client.post(BASE, json={"estado_emocional": "otimo"}, headers=token(ANA))
        assert r.status_code == 400
        assert r.json()["success"] is False

    @pytest.mark.asyncio
    async def test_um_registro_a_cada_oito_horas(self, client, token):
        await _registrar(client, token(ANA), "bem")
        r = await client.post(BASE, json={"estado_emocional": "bem"}, headers=token(ANA))
        assert r.status_code == 400
        assert "8 horas" in r.json()["error"]

    @pytest.mark.asyncio
    async def test_listagem_do_usuario_comum_so_mostra_os_seus(self, client, token):
        await _registrar(client, token(ANA), "bem")
        await _registrar(client, token(DIEGO), "bem")

        r = await client.get(BASE, headers=token(ANA))
        body = r.json()
        assert [e["matricula_usuario"] for e in body["data"]] == [ANA]
        assert body["pagination"]["total"] == 1


class TestAlertas:
    @pytest.mark.asyncio
    async def test_usuario_comum_nao_ve_alertas(self, client, token):
        r = await client.get(f"{BASE}/alertas", headers=token(ANA))
        assert r.status_code == 403

    @pytest.mark.asyncio
    async def test_lider_ve_apenas_o_proprio_escopo(self, client, token):
        await _registrar(client, token(ANA), "regular")
        await _registrar(client, token(DIEGO), "pessimo")

        r = await client.get(f"{BASE}/alertas", headers=token(CARLOS))
        assert [a["usuario_matricula"] for a in r.json()["data"]] == [ANA]

        r = await client.get(f"{BASE}/alertas", params={"all": "true"}, headers=token(ADMIN))
        assert {a["usuario_matricula"] for a in r.json()["data"]} == {ANA, DIEGO}

    @pytest.mark.asyncio
    async def test_estatisticas(self, client, token):
        await _registrar(client, token(ANA), "regular")

        r = await client.get(f"{BASE}/alertas/estatisticas", params={"periodo": "7d"}, headers=token(ADMIN))
        assert r.json()["data"]["totalAlertas"] == 1
        assert r.json()["data"]["alertasPendentes"] == 1

        r = await client.get(f"{BASE}/alertas/estatisticas", params={"periodo": "1y"}, headers=token(ADMIN))
        assert r.status_code == 400

    @pytest.mark.asyncio
    async def test_renotificar_alerta_ja_notificado(self, client, token):
        await _registrar(client, token(ANA), "pessimo")
        alerta = (await _alertas_de(client, token(ADMIN), ANA))[0]

        r = await client.post(f"{BASE}/alertas/{alerta['id']}/notificar", headers=token(ADMIN))
        assert r.status_code == 409

        r = await client.post(f"{BASE}/alertas/{alerta['id']}/notificar", headers=token(CARLOS))
        assert r.status_code == 403

    @pytest.mark.asyncio
    async def test_falha_no_escalonamento_ainda_reporta_alerta_criado(self, client, token):
        app.dependency_overrides[get_despachante] = lambda: DespachanteQuebrado(canais=[])
        body = await _registrar(client, token(ANA), "pessimo")
        assert body["alerta"]["alertaCriado"] is True

        alerta = (await _alertas_de(client, token(ADMIN), ANA))[0]
        assert alerta["notificado"] is False

        app.dependency_overrides[get_despachante] = lambda: DespachanteNotificacoes(canais=[])
        r = await client.post(f"{BASE}/alertas/{alerta['id']}/notificar", headers=token(ADMIN))
        assert r.status_code == 200
        assert r.json()["data"]["notificacoes_gravadas"] == 2
        assert r.json()["data"]["notificado"] is True

    @pytest.mark.asyncio
    async def test_notificar_perde_a_reserva_para_outra_requisicao(self, client, token, monkeypatch):
        app.dependency_overrides[get_despachante] = lambda: DespachanteQuebrado(canais=[])
        await _registrar(client, token(ANA), "regular")
        alerta = (await _alertas_de(client, token(ADMIN), ANA))[0]

        # outra requisição reservou o alerta entre a leitura e o despacho
        monkeypatch.setattr(
            "systemmax.modules.emociograma.router.escalar_alerta",
            AsyncMock(return_value=None),
        )
        r = await client.post(f"{BASE}/alertas/{alerta['id']}/notificar", headers=token(ADMIN))
        assert r.status_code == 409
        assert r.json() == {"success": False, "error": "Alerta já notificado"}

    @pytest.mark.asyncio
    async def test_resolver_alerta(self, client, token):
        await _registrar(client, token(ANA), "regular")
        alerta = (await _alertas_de(client, token(ADMIN), ANA))[0]

        r = await client.post(f"{BASE}/alertas/{alerta['id']}/resolver", headers=token(CARLOS))
        assert r.status_code == 200
        assert r.json()["data"]["resolvido"] is True

        r = await client.post(f"{BASE}/alertas/{alerta['id']}/resolver", headers=token(CARLOS))
        assert r.status_code == 409

    @pytest.mark.asyncio
    async def test_alerta_inexistente(self, client, token):
        r = await client.post(f"{BASE}/alertas/999/resolver", headers=token(ADMIN))
        assert r.status_code == 404
        assert r.json() == {"success": False, "error": "Alerta não encontrado"}


class TestTratativas:
    @pytest.mark.asyncio
    async def test_supervisor_de_outra_equipe_negado(self, client, token):
        await _registrar(client, token(DIEGO), "regular")
        alerta = (await _alertas_de(client, token(ADMIN), DIEGO))[0]

        r = await client.post(
            f"{BASE}/tratativas",
            json={
                "alerta_id": alerta["id"],
                "tipo_tratativa": "conversa",
                "descricao": "Conversa inicial",
                "acao_tomada": "Pausa de 15 minutos",
            },
            headers=token(BEA),
        )
        assert r.status_code == 403
        assert r.json()["error"] == MOTIVO_EQUIPE

    @pytest.mark.asyncio
    async def test_usuario_comum_negado(self, client, token):
        await _registrar(client, token(DIEGO), "regular")
        alerta = (await _alertas_de(client, token(ADMIN), DIEGO))[0]

        r = await client.post(
            f"{BASE}/tratativas",
            json={"alerta_id": alerta["id"], "tipo_tratativa": "conversa", "descricao": "x", "acao_tomada": "y"},
            headers=token(ANA),
        )
        assert r.status_code == 403
        assert r.json()["error"] == MOTIVO_SEM_PERMISSAO

    @pytest.mark.asyncio
    async def test_lider_registra_tratativa_e_resolve_o_alerta(self, client, token):
        await _registrar(client, token(ANA), "pessimo")
        alerta = (await _alertas_de(client, token(ADMIN), ANA))[0]
        payload = {
            "alerta_id": alerta["id"],
            "tipo_tratativa": "acompanhamento",
            "descricao": "Conversa no início do turno",
            "acao_tomada": "Remanejada para atividade leve",
        }

        r = await client.post(f"{BASE}/tratativas", json=payload, headers=token(CARLOS))
        assert r.status_code == 201
        assert r.json()["data"]["matricula_tratador"] == CARLOS

        alerta = (await _alertas_de(client, token(ADMIN), ANA))[0]
        assert alerta["resolvido"] is True

        r = await client.post(f"{BASE}/tratativas", json=payload, headers=token(CARLOS))
        assert r.status_code == 409

        r = await client.get(f"{BASE}/tratativas", headers=token(CARLOS))
        assert len(r.json()["data"]) == 1

        r = await client.get(f"{BASE}/tratativas", headers=token(ADMIN))
        assert r.json()["data"] == []

    @pytest.mark.asyncio
    async def test_campos_obrigatorios_e_tipo(self, client, token):
        r = await client.post(f"{BASE}/tratativas", json={"alerta_id": 1}, headers=token(ADMIN))
        assert r.status_code == 400

        r = await client.post(
            f"{BASE}/tratativas",
            json={"alerta_id": 1, "tipo_tratativa": "bronca", "descricao": "x", "acao_tomada": "y"},
            headers=token(ADMIN),
        )
        assert r.status_code == 400
        assert r.json()["error"] == "Tipo de tratativa inválido"

        r = await client.post(
            f"{BASE}/tratativas",
            json={"alerta_id": 999, "tipo_tratativa": "conversa", "descricao": "x", "acao_tomada": "y"},
            headers=token(ADMIN),
        )
        assert r.status_code == 404


class TestNotificacoes:
    @pytest.mark.asyncio
    async def test_marcar_lida_somente_o_destinatario(self, client, token):
        await _registrar(client, token(ANA), "regular")
        notificacao = (await client.get(f"{BASE}/notificacoes", headers=token(CARLOS))).json()["data"][0]

        r = await client.patch(f"{BASE}/notificacoes/{notificacao['id']}/lida", headers=token(BEA))
        assert r.status_code == 403

        r = await client.patch(f"{BASE}/notificacoes/{notificacao['id']}/lida", headers=token(CARLOS))
        assert r.status_code == 200
        assert r.json()["data"]["lida"] is True

        r = await client.get(f"{BASE}/notificacoes", params={"lida": "false"}, headers=token(CARLOS))
        assert r.json()["data"] == []

    @pytest.mark.asyncio
    async def test_notificacao_inexistente(self, client, token):
        r = await client.patch(f"{BASE}/notificacoes/999/lida", headers=token(CARLOS))
        assert r.status_code == 404
