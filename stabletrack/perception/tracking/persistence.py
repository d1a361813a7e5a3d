from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import numpy as np


def encode_array(arr: np.ndarray) -> List[Any]:
    # json writes floats with repr(); the round trip is exact
    return np.asarray(arr, dtype=np.float64).tolist()


def decode_array(data: List[Any]) -> np.ndarray:
    return np.array(data, dtype=np.float64)


def save_snapshot(path: str | Path, data: Dict[str, Any]) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(data), encoding="utf-8")
    return out


def load_snapshot(path: str | Path) -> Dict[str, Any]:
    src = Path(path)
    if not src.exists():
        raise FileNotFoundError(f"Snapshot not found: {src.resolve()}")
    return json.loads(src.read_text(encoding="utf-8"))
