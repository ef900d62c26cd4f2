"""Helpers to read typed values from environment variables."""

import os


def get_env_str(key: str, default: str) -> str:
    """Legge variabile ambiente come stringa."""
    return os.environ.get(key, default)


def get_env_int(key: str, default: int) -> int:
    """Legge variabile ambiente come intero."""
    return int(os.environ.get(key, default))


def get_env_float(key: str, default: float) -> float:
    """Legge variabile ambiente come float."""
    return float(os.environ.get(key, default))


def get_env_flag(key: str, default: bool) -> bool:
    """
    Read a boolean flag.

    Only the literal strings "true"/"false" (case-insensitive) change the
    default; anything else keeps it.
    """
    value = os.environ.get(key)
    if value is None:
        return default
    value = value.strip().lower()
    if value == "true":
        return True
    if value == "false":
        return False
    return default
