from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable

import pandas as pd

from planning_insights.records import STATUSES

DATE_WINDOWS = {"1m": 1, "3m": 3, "6m": 6, "1y": 12}
DATE_WINDOW_LABELS = {
    "all": "All time",
    "1m": "Last month",
    "3m": "Last 3 months",
    "6m": "Last 6 months",
    "1y": "Last year",
}


@dataclass(frozen=True)
class FilterCriteria:
    search: str = ""
    borough: str = "all"
    statuses: tuple[str, ...] = ()
    materials: tuple[str, ...] = ()
    architect: str = ""
    date_window: str = "all"

    @property
    def is_unconstrained(self) -> bool:
        return active_filter_count(self) == 0


def _normalize_multi(values: Iterable[str] | None) -> tuple[str, ...]:
    return tuple(sorted({v.strip() for v in values or [] if v and v.strip()}))


def criteria_from_params(
    search: str | None = None,
    borough: str | None = None,
    statuses: Iterable[str] | None = None,
    materials: Iterable[str] | None = None,
    architect: str | None = None,
    date_window: str | None = None,
) -> FilterCriteria:
    return FilterCriteria(
        search=search or "",
        borough=(borough or "").strip() or "all",
        statuses=_normalize_multi(statuses),
        materials=_normalize_multi(materials),
        architect=architect or "",
        date_window=(date_window or "all").strip(),
    )


def _known_statuses(criteria: FilterCriteria) -> list[str]:
    return [s for s in criteria.statuses if s in STATUSES]


def active_filter_count(criteria: FilterCriteria) -> int:
    return (
        (1 if criteria.search else 0)
        + (1 if criteria.borough not in ("", "all") else 0)
        + len(_known_statuses(criteria))
        + len(criteria.materials)
        + (1 if criteria.architect else 0)
        + (1 if criteria.date_window in DATE_WINDOWS else 0)
    )


def window_start(date_window: str, today: date) -> pd.Timestamp | None:
    """Earliest received date admitted by a date window, or None when unconstrained."""
    months = DATE_WINDOWS.get(date_window)
    if months is None:
        return None
    return pd.Timestamp(today) - pd.DateOffset(months=months)


def _lower(series: pd.Series) -> pd.Series:
    return series.fillna("").astype(str).str.lower()


def apply_filters(frame: pd.DataFrame, criteria: FilterCriteria, today: date | None = None) -> pd.DataFrame:
    """
    Keep the rows matching every active criterion, in their original order.

    Criteria combine with AND; the status and material multi-selects match
    any of their values. Unknown statuses and date windows are treated as
    unconstrained, so this never raises for any criteria value.
    """
    out = frame

    if criteria.search:
        needle = criteria.search.lower()
        mask = pd.Series(False, index=out.index)
        for col in ["name", "address", "architect", "developer", "description"]:
            mask = mask | _lower(out[col]).str.contains(needle, regex=False)
        in_materials = out["materials"].map(lambda items: any(needle in m.lower() for m in items))
        out = out.loc[mask | in_materials.astype(bool)]

    if criteria.borough not in ("", "all"):
        out = out.loc[out["borough"] == criteria.borough]

    statuses = _known_statuses(criteria)
    if statuses:
        out = out.loc[out["status"].isin(statuses)]

    if criteria.materials:
        wanted = frozenset(criteria.materials)
        has_material = out["materials"].map(lambda items: not wanted.isdisjoint(items))
        out = out.loc[has_material.astype(bool)]

    if criteria.architect:
        out = out.loc[_lower(out["architect"]).str.contains(criteria.architect.lower(), regex=False)]

    today = today or date.today()
    start = window_start(criteria.date_window, today)
    if start is not None:
        received = out["received_date"]
        out = out.loc[(received >= start) & (received <= pd.Timestamp(today))]

    return out
