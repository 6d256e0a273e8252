"""
Session-scoped view state for the dashboard, project detail and trends pages.

Views hold only the user's current selections. Displayed data is always
re-derived from the record frame through the filter and aggregation
functions, so a fresh view object is a reset to defaults.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any

import geopandas as gpd
import pandas as pd

from planning_insights import aggregations as agg
from planning_insights.filters import (
    DATE_WINDOW_LABELS,
    DATE_WINDOWS,
    FilterCriteria,
    active_filter_count,
    apply_filters,
    criteria_from_params,
)
from planning_insights.geo import to_markers
from planning_insights.records import STATUSES, get_application, to_application

logger = logging.getLogger(__name__)


@dataclass
class DashboardView:
    frame: pd.DataFrame
    search: str = ""
    borough: str = "all"
    statuses: list[str] = field(default_factory=list)
    materials: list[str] = field(default_factory=list)
    architect: str = ""
    date_window: str = "all"
    selected_id: str | None = None
    today: date | None = None

    @property
    def criteria(self) -> FilterCriteria:
        return criteria_from_params(
            search=self.search,
            borough=self.borough,
            statuses=self.statuses,
            materials=self.materials,
            architect=self.architect,
            date_window=self.date_window,
        )

    @property
    def active_filter_count(self) -> int:
        return active_filter_count(self.criteria)

    def set_date_window(self, window: str) -> None:
        self.date_window = window if window in DATE_WINDOWS else "all"

    def toggle_status(self, status: str) -> None:
        if status in self.statuses:
            self.statuses.remove(status)
        elif status in STATUSES:
            self.statuses.append(status)

    def toggle_material(self, material: str) -> None:
        if material in self.materials:
            self.materials.remove(material)
        else:
            self.materials.append(material)

    def remove_filter(self, kind: str, value: str | None = None) -> None:
        if kind == "search":
            self.search = ""
        elif kind == "borough":
            self.borough = "all"
        elif kind == "status" and value in self.statuses:
            self.statuses.remove(value)
        elif kind == "material" and value in self.materials:
            self.materials.remove(value)
        elif kind == "architect":
            self.architect = ""
        elif kind == "date":
            self.date_window = "all"

    def clear_filters(self) -> None:
        self.search = ""
        self.borough = "all"
        self.statuses = []
        self.materials = []
        self.architect = ""
        self.date_window = "all"

    def filter_chips(self) -> list[dict[str, str]]:
        chips = []
        if self.search:
            chips.append({"kind": "search", "label": f'Search: "{self.search[:20]}..."'})
        if self.borough != "all":
            chips.append({"kind": "borough", "label": self.borough})
        chips.extend({"kind": "status", "value": s, "label": s} for s in self.statuses)
        chips.extend({"kind": "material", "value": m, "label": m} for m in self.materials)
        if self.architect:
            chips.append({"kind": "architect", "label": f"Architect: {self.architect}"})
        if self.date_window in DATE_WINDOWS:
            chips.append({"kind": "date", "label": DATE_WINDOW_LABELS[self.date_window]})
        return chips

    def results(self) -> pd.DataFrame:
        return apply_filters(self.frame, self.criteria, today=self.today)

    def markers(self) -> gpd.GeoDataFrame:
        return to_markers(self.results())

    def select(self, record_id: str) -> None:
        """Selection event from the map; ids outside the current results are ignored."""
        if (self.results()["id"] == record_id).any():
            self.selected_id = record_id
        else:
            logger.debug("Ignoring selection of %s, not in current results", record_id)

    def result_label(self) -> str:
        count = len(self.results())
        label = f"{count} application{'' if count == 1 else 's'} found"
        if self.active_filter_count > 0:
            label += f" (filtered from {len(self.frame)} total)"
        return label


def project_detail(frame: pd.DataFrame, record_id: str) -> dict[str, Any] | None:
    """
    Detail payload for one application.

    Unknown ids fall back to the first application in the store, and an
    empty store gives None.
    """
    app = get_application(frame, record_id)
    if app is None:
        if frame.empty:
            return None
        logger.info("Unknown application %s, falling back to first record", record_id)
        app = to_application(frame.iloc[0])

    summary = (
        f"This {app.project_type} in {app.neighbourhood}, {app.borough} proposes {app.storeys} storeys "
        f"with {app.units} units. The scheme features {', '.join(app.materials)} materials and includes "
        f"sustainability features: {', '.join(app.sustainability_features)}. {app.description}"
    )
    detail = asdict(app)
    detail.update(
        {
            "materials": list(app.materials),
            "sustainability_features": list(app.sustainability_features),
            "received_date": app.received_date.isoformat(),
            "decision_date": app.decision_date.isoformat() if app.decision_date else None,
            "authority": app.borough,
            "ward": app.neighbourhood,
            "height": f"{app.storeys * 3}m",
            "floors": app.storeys,
            "summary": summary,
        }
    )
    return detail


TABS = ("activity", "design", "sustainability", "geospatial", "firms", "insights")


@dataclass
class TrendsView:
    frame: pd.DataFrame
    active_tab: str = "activity"

    def select_tab(self, tab: str) -> None:
        self.active_tab = tab if tab in TABS else "activity"

    def headline(self) -> dict[str, Any]:
        return agg.overall_stats(self.frame)

    def tab_payload(self, tab: str | None = None) -> dict[str, Any]:
        tab = tab if tab in TABS else self.active_tab
        frame = self.frame
        if tab == "design":
            return {
                "materials": agg.materials_frequency(frame),
                "height_by_borough": agg.height_distribution(frame),
            }
        if tab == "sustainability":
            return {
                "features": agg.sustainability_frequency(frame)[:8],
                "monthly_trend": agg.sustainability_trend(frame),
                "adoption": agg.overall_stats(frame)["sustainability_adoption"],
            }
        if tab == "geospatial":
            return {"approval_by_borough": agg.approval_by_borough(frame)}
        if tab == "firms":
            return {
                "top_architects": agg.top_architects(frame),
                "top_developers": agg.top_developers(frame),
                "collaborations": agg.collaboration_pairs(frame),
            }
        if tab == "insights":
            return {"insights": agg.trend_insights(frame)}
        return {
            "approval_by_project_type": agg.approval_by_project_type(frame),
            "decision_times": agg.decision_time_distribution(frame),
            "authority_speed": agg.authority_speed(frame),
            "status_breakdown": agg.status_distribution(frame),
        }
