from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]
DATA_DIR = BASE_DIR / "data"


def _pick_path(*candidates: Path) -> Path:
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return candidates[0]


PLANNING_CSV = (
    Path(os.environ["PLANNING_DATA_CSV"])
    if os.getenv("PLANNING_DATA_CSV")
    else _pick_path(
        DATA_DIR / "london_applications.csv",
        Path.cwd() / "data" / "london_applications.csv",
    )
)

FRONTEND_ORIGINS = [o.strip() for o in os.getenv("FRONTEND_ORIGIN", "*").split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
