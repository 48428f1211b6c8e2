import json
import logging
import sys

logger = logging.getLogger("model-failover")
logger.setLevel(logging.INFO)
if not logger.handlers:
    _handler = logging.StreamHandler(sys.stdout)
    _handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(_handler)
logger.propagate = False


def get_logger(name: str | None = None) -> logging.Logger:
    if name is None:
        return logger
    return logger.getChild(name)


def log_event(log: logging.Logger, message: str, level: int = logging.INFO, **fields) -> None:
    if not log.isEnabledFor(level):
        return
    payload = {"message": message, **fields}
    log.log(level, json.dumps(payload, separators=(",", ":"), default=str))
