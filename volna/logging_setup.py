"""
Logger configuration for Volna Bot
"""
import json
import time
import logging
from logging.handlers import RotatingFileHandler
from typing import Dict, Any


class JsonFormatter(logging.Formatter):
    def format(self, record):
        base = {
            "ts": time.strftime('%Y-%m-%dT%H:%M:%S', time.gmtime(record.created)),
            "lvl": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            base["exc"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False)


def setup_logging(config: Dict[str, Any]) -> logging.Logger:
    """Configure the ``Volna`` logger tree once; later calls return it unchanged."""
    logger = logging.getLogger("Volna")
    if logger.handlers:
        return logger
    structured = bool(config.get("structured_logging"))
    trace_on = bool(config.get("trace_logging"))
    if structured:
        fmt = JsonFormatter()
    else:
        fmt = logging.Formatter("%(asctime)s:%(levelname)s:%(name)s: %(message)s")
    logger.setLevel(logging.DEBUG if trace_on else logging.INFO)
    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    logger.addHandler(ch)
    log_file = config.get("log_file")
    if log_file and not structured:
        fh = RotatingFileHandler(log_file, maxBytes=5_000_000, backupCount=3, encoding="utf-8")
        fh.setFormatter(fmt)
        logger.addHandler(fh)
    logger.info("Logger initialized (structured=%s trace=%s)", structured, trace_on)
    return logger
