# systemmax/integrations/canais.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

import httpx

from systemmax.core.config import settings

logger = logging.getLogger(__name__)


class CanalError(RuntimeError):
    def __init__(self, code: str, data: Any):
        super().__init__(code)
        self.code = code
        self.data = data


class CanalNotificacao(Protocol):
    nome: str

    async def enviar(self, destinatario_matricula: int, payload: Dict[str, Any]) -> None: ...


class CanalLog:
    """Registra a entrega no log da aplicação."""
    nome = "log"

    async def enviar(self, destinatario_matricula: int, payload: Dict[str, Any]) -> None:
        logger.info(
            "NOTIFICACAO_ENVIADA",
            extra={"destinatario": destinatario_matricula, "tipo": payload.get("tipo")},
        )


class CanalWebhook:
    """Entrega via webhook de chat (Teams/Slack)."""
    nome = "webhook"

    def __init__(self, url: str, timeout: float = 5.0):
        self.url = url
        self._timeout = timeout
        self._headers = {
            "accept": "application/json",
            "content-type": "application/json",
        }

    def _mensagem(self, payload: Dict[str, Any]) -> str:
        texto = (
            f"Emociograma: {payload.get('usuario_afetado')} registrou estado "
            f"'{payload.get('estado_emocional')}' ({payload.get('tipo')})."
        )
        if payload.get("observacoes"):
            texto += f" Observações: {payload['observacoes']}"
        return texto

    async def enviar(self, destinatario_matricula: int, payload: Dict[str, Any]) -> None:
        body = {
            "text": self._mensagem(payload),
            "destinatario_matricula": destinatario_matricula,
            **payload,
        }
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            r = await client.post(self.url, json=body, headers=self._headers)
            if r.status_code >= 400:
                try:
                    data = r.json()
                except ValueError:
                    data = {"error": r.text}
                data["_status_code"] = r.status_code
                raise CanalError("webhook_failed", data)


def canais_configurados(webhook_url: Optional[str] = None) -> list[CanalNotificacao]:
    canais: list[CanalNotificacao] = [CanalLog()]
    url = webhook_url or settings.NOTIFY_WEBHOOK_URL
    if url:
        canais.append(CanalWebhook(url, timeout=settings.NOTIFY_TIMEOUT_SECONDS))
    return canais
