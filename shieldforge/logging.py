import logging
import sys
import time

from pythonjsonlogger.json import JsonFormatter


class UTCJsonFormatter(JsonFormatter):
    converter = time.gmtime


def setup_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level.upper())

    handler = logging.StreamHandler(sys.stdout)
    fmt = "%(asctime)s %(levelname)s %(name)s %(message)s"
    handler.setFormatter(UTCJsonFormatter(fmt))
    root.addHandler(handler)

    # third-party libraries are chatty at DEBUG
    logging.getLogger("redis").setLevel("WARNING")


def challenge_prefix(challenge: str) -> str:
    """Short, non-replayable prefix of a challenge for log correlation."""
    return challenge[:8]
