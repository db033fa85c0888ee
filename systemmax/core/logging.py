# systemmax/core/logging.py
import logging
import sys

_is_configured = False


class ContextFormatter(logging.Formatter):
    """
    Acrescenta ao final da linha os campos passados via `extra=`,
    no formato chave=valor.
    """

    _RESERVED = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

    def format(self, record):
        base = super().format(record)
        contexto = {k: v for k, v in vars(record).items() if k not in self._RESERVED}
        if not contexto:
            return base
        pares = " ".join(f"{k}={v}" for k, v in sorted(contexto.items()))
        return f"{base} | {pares}"


def setup_logging(level: str = "INFO") -> None:
    """Configura o logger raiz uma única vez por processo."""
    global _is_configured
    if _is_configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        ContextFormatter(
            fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    root = logging.getLogger()
    root.setLevel(level.upper())
    root.addHandler(handler)

    # uvicorn já tem os próprios handlers
    logging.getLogger("uvicorn.access").propagate = False

    _is_configured = True
