"""
JSON logging for the process. Installed once from the app lifespan.
Never log access tokens, authorization codes or the client secret.
"""
import logging

from pythonjsonlogger.json import JsonFormatter

from armory_web.config import LOG_LEVEL

_configured = False


def setup_logging(level: str = LOG_LEVEL) -> None:
    global _configured
    root = logging.getLogger()
    root.setLevel(level)
    if _configured:
        return
    handler = logging.StreamHandler()
    formatter = JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s",
        rename_fields={"levelname": "level", "asctime": "timestamp"},
    )
    handler.setFormatter(formatter)
    root.addHandler(handler)
    # httpx logs every request URL at INFO; keep it out of the app log
    logging.getLogger("httpx").setLevel(logging.WARNING)
    _configured = True
