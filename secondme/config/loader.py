"""
Settings Loader
===============

Builds ``Settings`` from dataclass defaults plus an optional YAML file.

YAML layout (every key optional):

    semantic_rag:
      enabled: true
      fallback_threshold: 3
      search:
        people: {top_k: 10, min_score: 0.65}
      reranking: {max_results: 10, min_score: 0.4, score_drop: 0.3}
    embedding:
      cache_ttl_seconds: 300
      breaker_threshold: 5
    history:
      retrieval: {max_tokens: 1500, min_messages: 5}
      chunking: {gap_minutes: 10}

Load order:
1. Explicit path argument
2. SECONDME_CONFIG_PATH environment variable
3. Dataclass defaults (env vars)
"""

import os
from dataclasses import fields, is_dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
import yaml

from secondme.config.settings import Settings

log = structlog.get_logger()


def _merge(instance: Any, overrides: Dict[str, Any], section: str) -> Any:
    """
    Return a copy of ``instance`` with ``overrides`` applied.

    Nested dataclasses are merged recursively; ``replace`` re-runs
    ``__post_init__`` so invalid values raise ``ValueError``.
    """
    known = {f.name for f in fields(instance)}
    changes: Dict[str, Any] = {}

    for key, value in overrides.items():
        if key not in known:
            log.warning("Unknown config key ignored", key=f"{section}.{key}")
            continue

        current = getattr(instance, key)
        if is_dataclass(current) and isinstance(value, dict):
            changes[key] = _merge(current, value, f"{section}.{key}")
        else:
            changes[key] = value

    return replace(instance, **changes)


def _read_yaml(path: Path) -> Dict[str, Any]:
    """Read a YAML mapping; missing or broken files yield {}."""
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        log.warning("Config file not found, using defaults", path=str(path))
        return {}
    except (OSError, yaml.YAMLError) as e:
        log.error("Error loading config, using defaults", path=str(path), error=str(e))
        return {}

    if not isinstance(data, dict):
        log.error("Config root must be a mapping, using defaults", path=str(path))
        return {}

    log.debug("Loaded settings from YAML", path=str(path))
    return data


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """
    Load settings, applying YAML overrides on top of the defaults.

    Args:
        config_path: YAML file; falls back to ``SECONDME_CONFIG_PATH``

    Returns:
        Settings instance

    Raises:
        ValueError: If an override violates a section's validation
    """
    settings = Settings()

    if config_path is None:
        env_path = os.environ.get("SECONDME_CONFIG_PATH")
        if not env_path:
            return settings
        config_path = Path(env_path)

    data = _read_yaml(Path(config_path))
    if not data:
        return settings

    return _merge(settings, data, "settings")
