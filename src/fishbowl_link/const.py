import os

from fishbowl_link import __version__

__all__ = [
    "FISHBOWL_AUTO_LOGIN",
    "FISHBOWL_CONNECT_TIMEOUT",
    "FISHBOWL_DEBUG",
    "FISHBOWL_HOST",
    "FISHBOWL_IA_DESCRIPTION",
    "FISHBOWL_IA_ID",
    "FISHBOWL_IA_NAME",
    "FISHBOWL_LOG_FORMAT",
    "FISHBOWL_LOG_HUMAN_OUTPUT",
    "FISHBOWL_LOG_JSON_FILE",
    "FISHBOWL_LOG_NAME",
    "FISHBOWL_METRICS_PORT",
    "FISHBOWL_PASSWORD",
    "FISHBOWL_PORT",
    "FISHBOWL_REQUEST_TIMEOUT",
    "FISHBOWL_USERNAME",
    "FISHBOWL_VERSION",
    "YES_ANSWER",
]

YES_ANSWER = ("true", "1", "yes", "y", "t", 1, "on", "o")
FISHBOWL_LOG_NAME: str = "fishbowl_link"
FISHBOWL_VERSION: str = __version__


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


FISHBOWL_HOST: str = os.environ.get("FISHBOWL_HOST", "127.0.0.1")
FISHBOWL_PORT: int = _int_env("FISHBOWL_PORT", 28192)
FISHBOWL_IA_ID: int = _int_env("FISHBOWL_IA_ID", 54321)
FISHBOWL_IA_NAME: str = os.environ.get("FISHBOWL_IA_NAME", "Fishbowljs")
FISHBOWL_IA_DESCRIPTION: str = os.environ.get("FISHBOWL_IA_DESCRIPTION", "Fishbowljs helper")
FISHBOWL_USERNAME: str = os.environ.get("FISHBOWL_USERNAME", "admin")
FISHBOWL_PASSWORD: str = os.environ.get("FISHBOWL_PASSWORD", "admin")
FISHBOWL_AUTO_LOGIN: bool = os.environ.get("FISHBOWL_AUTO_LOGIN", "true").casefold() in YES_ANSWER

FISHBOWL_CONNECT_TIMEOUT: float = _float_env("FISHBOWL_CONNECT_TIMEOUT", 5.0)
FISHBOWL_REQUEST_TIMEOUT: float = _float_env("FISHBOWL_REQUEST_TIMEOUT", 60.0)

FISHBOWL_DEBUG: bool = os.environ.get("FISHBOWL_DEBUG", "0").casefold() in YES_ANSWER
FISHBOWL_LOG_FORMAT: str = os.environ.get("FISHBOWL_LOG_FORMAT", "human")
FISHBOWL_LOG_JSON_FILE: str | None = os.environ.get("FISHBOWL_LOG_JSON_FILE") or None
FISHBOWL_LOG_HUMAN_OUTPUT: str = os.environ.get("FISHBOWL_LOG_HUMAN_OUTPUT", "stderr")
FISHBOWL_METRICS_PORT: int = _int_env("FISHBOWL_METRICS_PORT", 0)
