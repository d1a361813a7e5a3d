from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping

import yaml


def load_yaml(path: str | Path) -> Dict[str, Any]:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path.resolve()}")
    with config_path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config root must be a mapping: {config_path}")
    return data


def get(cfg: Mapping[str, Any], key: str, default: Any = None) -> Any:
    """Look up a dotted key such as "runtime.overlay.enabled"."""
    cur: Any = cfg
    for part in key.split("."):
        if not isinstance(cur, Mapping) or part not in cur:
            return default
        cur = cur[part]
    return cur


def section(cfg: Mapping[str, Any], key: str) -> Dict[str, Any]:
    """A nested mapping by dotted key; missing or null sections come back empty."""
    value = get(cfg, key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"Config section '{key}' must be a mapping, got {type(value).__name__}")
    return dict(value)
