"""
In-memory record store for planning applications.

The store is a pandas DataFrame with one row per application. It is read
once from CSV, validated against the data-model invariants and never
mutated afterwards; filters and aggregations always return new frames.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable, Mapping

import pandas as pd

from planning_insights import config

logger = logging.getLogger(__name__)

STATUSES = ("Approved", "Pending", "Refused", "Withdrawn")
DECIDED_STATUSES = frozenset({"Approved", "Refused", "Withdrawn"})

TEXT_COLUMNS = [
    "id",
    "reference",
    "name",
    "address",
    "description",
    "project_type",
    "use_class",
    "architect",
    "developer",
    "borough",
    "neighbourhood",
    "status",
]
MULTI_COLUMNS = ["materials", "sustainability_features"]
COLUMNS = TEXT_COLUMNS + [
    "latitude",
    "longitude",
    "storeys",
    "units",
    *MULTI_COLUMNS,
    "received_date",
    "decision_date",
]


@dataclass(frozen=True)
class PlanningApplication:
    id: str
    reference: str
    name: str
    address: str
    description: str
    project_type: str
    use_class: str
    architect: str
    developer: str
    borough: str
    neighbourhood: str
    latitude: float
    longitude: float
    storeys: int
    units: int
    materials: tuple[str, ...]
    sustainability_features: tuple[str, ...]
    status: str
    received_date: date
    decision_date: date | None = None

    @property
    def is_decided(self) -> bool:
        return self.decision_date is not None


def _split_multi(value: Any) -> tuple[str, ...]:
    if isinstance(value, (list, tuple, set, frozenset)):
        items = [str(v).strip() for v in value]
    elif isinstance(value, str):
        items = [part.strip() for part in value.split(";")]
    else:
        return ()
    return tuple(item for item in items if item)


def _coerce(frame: pd.DataFrame) -> pd.DataFrame:
    out = frame.copy()
    for col in TEXT_COLUMNS:
        out[col] = out[col].fillna("").astype(str).str.strip()
    for col in MULTI_COLUMNS:
        out[col] = out[col].map(_split_multi).astype(object)
    for col in ["received_date", "decision_date"]:
        out[col] = pd.to_datetime(out[col], errors="coerce")
    for col in ["latitude", "longitude"]:
        out[col] = pd.to_numeric(out[col], errors="coerce")
    for col in ["storeys", "units"]:
        out[col] = pd.to_numeric(out[col], errors="coerce").fillna(-1).astype(int)
    return out.reset_index(drop=True)


def frame_from_records(records: Iterable[PlanningApplication | Mapping[str, Any]]) -> pd.DataFrame:
    """Build a store frame from dataclass instances or plain mappings."""
    rows = [asdict(r) if isinstance(r, PlanningApplication) else dict(r) for r in records]
    return _coerce(pd.DataFrame(rows, columns=COLUMNS))


def invariant_mask(frame: pd.DataFrame) -> pd.Series:
    """True for rows that satisfy every data-model invariant."""
    has_decision = frame["decision_date"].notna()
    decided = frame["status"].isin(DECIDED_STATUSES)
    ordered = ~has_decision | (frame["decision_date"] >= frame["received_date"])
    return (
        (frame["id"] != "")
        & frame["status"].isin(STATUSES)
        & frame["received_date"].notna()
        & (decided == has_decision)
        & ordered
        & (frame["storeys"] >= 1)
        & (frame["units"] >= 0)
    )


def validate(frame: pd.DataFrame) -> pd.DataFrame:
    mask = invariant_mask(frame)
    invalid = frame.loc[~mask, "id"].tolist()
    if invalid:
        logger.warning("Dropping %d application(s) violating invariants: %s", len(invalid), invalid)
    out = frame.loc[mask]

    duplicated = out["id"].duplicated(keep="first")
    if duplicated.any():
        logger.warning("Dropping %d duplicate application id(s)", int(duplicated.sum()))
        out = out.loc[~duplicated]
    return out.reset_index(drop=True)


@lru_cache(maxsize=4)
def load_applications(path: Path | None = None) -> pd.DataFrame:
    """Read and validate the application CSV. Cached per path for the process lifetime."""
    source = Path(path) if path is not None else config.PLANNING_CSV
    raw = pd.read_csv(source, dtype=str, keep_default_na=False)
    missing = [c for c in COLUMNS if c not in raw.columns]
    for col in missing:
        raw[col] = ""
    if missing:
        logger.warning("Columns missing from %s: %s", source, missing)

    frame = validate(_coerce(raw[COLUMNS]))
    logger.info("Loaded %d planning applications from %s", len(frame), source)
    return frame


def _to_date(value: Any) -> date | None:
    if pd.isna(value):
        return None
    return pd.Timestamp(value).date()


def to_application(row: pd.Series) -> PlanningApplication:
    return PlanningApplication(
        **{col: row[col] for col in TEXT_COLUMNS},
        latitude=float(row["latitude"]),
        longitude=float(row["longitude"]),
        storeys=int(row["storeys"]),
        units=int(row["units"]),
        materials=tuple(row["materials"]),
        sustainability_features=tuple(row["sustainability_features"]),
        received_date=_to_date(row["received_date"]),
        decision_date=_to_date(row["decision_date"]),
    )


def get_application(frame: pd.DataFrame, record_id: str) -> PlanningApplication | None:
    match = frame.loc[frame["id"] == record_id]
    if match.empty:
        return None
    return to_application(match.iloc[0])


def _sorted_unique(series: pd.Series) -> list[str]:
    return sorted({str(v) for v in series if str(v)})


def unique_values(frame: pd.DataFrame) -> dict[str, list[str]]:
    """Sorted distinct values for each categorical column; this is the enumeration order."""
    return {
        "boroughs": _sorted_unique(frame["borough"]),
        "neighbourhoods": _sorted_unique(frame["neighbourhood"]),
        "architects": _sorted_unique(frame["architect"]),
        "developers": _sorted_unique(frame["developer"]),
        "project_types": _sorted_unique(frame["project_type"]),
        "use_classes": _sorted_unique(frame["use_class"]),
        "materials": _sorted_unique(frame["materials"].explode().dropna()),
        "sustainability_features": _sorted_unique(frame["sustainability_features"].explode().dropna()),
    }
