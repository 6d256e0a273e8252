from __future__ import annotations

import logging
from datetime import date
from functools import lru_cache
from typing import Any

import pandas as pd
from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from pydantic import BaseModel

from planning_insights import aggregations as agg
from planning_insights import config
from planning_insights.alerts import AlertBook
from planning_insights.compare import ArchitectComparison
from planning_insights.filters import FilterCriteria, apply_filters, criteria_from_params
from planning_insights.geo import filter_bbox, to_geojson, to_markers
from planning_insights.records import STATUSES, load_applications, unique_values
from planning_insights.views import TrendsView, project_detail

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


class AlertIn(BaseModel):
    name: str
    search: str | None = None
    borough: str | None = None
    statuses: list[str] = []
    materials: list[str] = []
    architect: str | None = None
    date_window: str | None = None
    frequency: str = "Daily"


def _records() -> pd.DataFrame:
    return load_applications()


def _filter_criteria(
    search: str | None = Query(default=None),
    borough: str | None = Query(default=None),
    status: list[str] | None = Query(default=None),
    material: list[str] | None = Query(default=None),
    architect: str | None = Query(default=None),
    date_window: str | None = Query(default=None),
) -> FilterCriteria:
    return criteria_from_params(search, borough, status, material, architect, date_window)


@lru_cache(maxsize=128)
def _filtered(criteria: FilterCriteria, today: date) -> pd.DataFrame:
    return apply_filters(_records(), criteria, today=today)


def _current(criteria: FilterCriteria) -> pd.DataFrame:
    return _filtered(criteria, date.today())


app = FastAPI(title="London Planning Insights API", version="0.1.0")
app.add_middleware(GZipMiddleware, minimum_size=1024)
allow_credentials = config.FRONTEND_ORIGINS != ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.FRONTEND_ORIGINS if config.FRONTEND_ORIGINS else ["*"],
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.state.alerts = AlertBook()


@app.get("/meta")
def meta() -> dict[str, Any]:
    frame = _records()
    return {
        "total_applications": int(len(frame)),
        "statuses": list(STATUSES),
        **unique_values(frame),
    }


@app.get("/applications")
def applications(
    criteria: FilterCriteria = Depends(_filter_criteria),
    min_lng: float | None = Query(default=None),
    min_lat: float | None = Query(default=None),
    max_lng: float | None = Query(default=None),
    max_lat: float | None = Query(default=None),
) -> dict[str, Any]:
    filtered = _current(criteria)
    markers = filter_bbox(to_markers(filtered), min_lng, min_lat, max_lng, max_lat)
    payload = to_geojson(markers)
    payload["metadata"] = {
        "count": int(len(markers)),
        "total": int(len(_records())),
        "filtered": not criteria.is_unconstrained,
    }
    return payload


@app.get("/applications/{record_id}")
def application_detail(record_id: str) -> dict[str, Any]:
    frame = _records()
    if not (frame["id"] == record_id).any():
        raise HTTPException(status_code=404, detail="Application not found")
    return project_detail(frame, record_id)


@app.get("/summary")
def summary(criteria: FilterCriteria = Depends(_filter_criteria)) -> dict[str, Any]:
    filtered = _current(criteria)
    payload = agg.overall_stats(filtered)
    payload["status_breakdown"] = agg.status_distribution(filtered)
    return payload


@app.get("/trends")
def trends(
    tab: str = Query(default="activity"),
    criteria: FilterCriteria = Depends(_filter_criteria),
) -> dict[str, Any]:
    view = TrendsView(_current(criteria))
    view.select_tab(tab)
    return {"tab": view.active_tab, "stats": view.headline(), "data": view.tab_payload()}


@app.get("/architects")
def architects(
    q: str = Query(default=""),
    exclude: list[str] | None = Query(default=None),
) -> list[dict[str, Any]]:
    comparison = ArchitectComparison(_records(), selected=list(exclude or []))
    return comparison.search(q)


@app.get("/compare")
def compare(architect: list[str] | None = Query(default=None)) -> dict[str, Any]:
    comparison = ArchitectComparison(_records())
    if architect:
        comparison.selected = []
        for slug in architect:
            comparison.add(slug)
    return comparison.payload()


@app.get("/alerts")
def list_alerts() -> dict[str, Any]:
    frame = _records()
    book: AlertBook = app.state.alerts
    return {"alerts": [a.to_dict(frame) for a in book.alerts], "stats": book.stats(frame)}


@app.post("/alerts", status_code=201)
def create_alert(payload: AlertIn) -> dict[str, Any]:
    criteria = criteria_from_params(
        payload.search,
        payload.borough,
        payload.statuses,
        payload.materials,
        payload.architect,
        payload.date_window,
    )
    alert = app.state.alerts.create(payload.name, criteria, frequency=payload.frequency)
    return alert.to_dict(_records())


@app.post("/alerts/{alert_id}/toggle")
def toggle_alert(alert_id: str) -> dict[str, Any]:
    alert = app.state.alerts.toggle(alert_id)
    if alert is None:
        raise HTTPException(status_code=404, detail="Alert not found")
    return alert.to_dict(_records())


@app.delete("/alerts/{alert_id}", status_code=204)
def delete_alert(alert_id: str) -> None:
    if not app.state.alerts.delete(alert_id):
        raise HTTPException(status_code=404, detail="Alert not found")
