"""
config.py
---------
Environment driven settings for the hot-lab radioprotection engine.

Variables
- HOTLAB_LOG_LEVEL: logging level name for the API process (default INFO)
- HOTLAB_DATA_DIR: directory holding isotopes.json and dosimetry.json
  (default: the package data/ directory)
- HOTLAB_NEAR_EXPIRY_HOURS: window in hours for the near-expiry alert (default 1)
- HOTLAB_DEFAULT_MINIMUM_ACTIVITY_FRACTION: fraction of the initial activity used
  as minimum usable activity when a lot does not state one (default 0.1)
- HOTLAB_CORS_ORIGINS: comma separated list of allowed origins (default *)

Values are read once at import time; they are constant for the process lifetime.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import List


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got '{raw}'") from e


LOG_LEVEL: str = os.getenv("HOTLAB_LOG_LEVEL", "INFO").upper()

DATA_DIR: Path = Path(
    os.getenv("HOTLAB_DATA_DIR", str(Path(__file__).resolve().parent / "data"))
).resolve()

NEAR_EXPIRY_HOURS: float = _float_env("HOTLAB_NEAR_EXPIRY_HOURS", 1.0)

DEFAULT_MINIMUM_ACTIVITY_FRACTION: float = _float_env(
    "HOTLAB_DEFAULT_MINIMUM_ACTIVITY_FRACTION", 0.1
)

CORS_ORIGINS: List[str] = [
    o.strip() for o in os.getenv("HOTLAB_CORS_ORIGINS", "*").split(",") if o.strip()
]

if NEAR_EXPIRY_HOURS <= 0:
    raise ValueError("HOTLAB_NEAR_EXPIRY_HOURS must be greater than zero.")
if not 0 < DEFAULT_MINIMUM_ACTIVITY_FRACTION <= 1:
    raise ValueError("HOTLAB_DEFAULT_MINIMUM_ACTIVITY_FRACTION must be in (0, 1].")
