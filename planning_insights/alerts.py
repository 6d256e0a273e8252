from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from planning_insights.filters import DATE_WINDOW_LABELS, FilterCriteria, apply_filters

logger = logging.getLogger(__name__)

FREQUENCIES = ("Daily", "Weekly")


@dataclass
class Alert:
    id: str
    name: str
    description: str
    criteria: FilterCriteria
    frequency: str = "Daily"
    enabled: bool = True
    last_notified: str = "Never"

    def matches(self, frame: pd.DataFrame) -> int:
        return len(apply_filters(frame, self.criteria))

    def to_dict(self, frame: pd.DataFrame) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "criteria": self.description,
            "frequency": self.frequency,
            "enabled": self.enabled,
            "matches": self.matches(frame),
            "last_notified": self.last_notified,
        }


def default_alerts() -> list[Alert]:
    return [
        Alert(
            id="1",
            name="CLT Projects in Camden",
            description="Material: CLT, Location: Camden",
            criteria=FilterCriteria(borough="Camden", materials=("CLT",)),
            last_notified="2 hours ago",
        ),
        Alert(
            id="2",
            name="Foster + Partners Applications",
            description="Architect: Foster + Partners, Greater London",
            criteria=FilterCriteria(architect="Foster + Partners"),
            frequency="Weekly",
            last_notified="3 days ago",
        ),
        Alert(
            id="3",
            name="High-rise Residential Tower Hamlets",
            description="Type: Residential, Location: Tower Hamlets",
            criteria=FilterCriteria(search="residential", borough="Tower Hamlets"),
            enabled=False,
        ),
        Alert(
            id="4",
            name="Westminster Approvals",
            description="Authority: Westminster, Status: Approved",
            criteria=FilterCriteria(borough="Westminster", statuses=("Approved",)),
            frequency="Weekly",
            last_notified="1 day ago",
        ),
    ]


@dataclass
class AlertBook:
    """Saved searches for one session. Nothing here touches the records themselves."""

    alerts: list[Alert] = field(default_factory=default_alerts)

    def __post_init__(self) -> None:
        numeric = [int(a.id) for a in self.alerts if a.id.isdigit()]
        self._ids = itertools.count(max(numeric, default=0) + 1)

    def get(self, alert_id: str) -> Alert | None:
        return next((a for a in self.alerts if a.id == alert_id), None)

    def create(
        self,
        name: str,
        criteria: FilterCriteria,
        description: str = "",
        frequency: str = "Daily",
    ) -> Alert:
        alert = Alert(
            id=str(next(self._ids)),
            name=name,
            description=description or describe(criteria),
            criteria=criteria,
            frequency=frequency if frequency in FREQUENCIES else "Daily",
        )
        self.alerts.append(alert)
        logger.info("Created alert %s (%s)", alert.id, alert.name)
        return alert

    def toggle(self, alert_id: str) -> Alert | None:
        alert = self.get(alert_id)
        if alert is not None:
            alert.enabled = not alert.enabled
        return alert

    def delete(self, alert_id: str) -> bool:
        alert = self.get(alert_id)
        if alert is None:
            return False
        self.alerts.remove(alert)
        logger.info("Deleted alert %s", alert_id)
        return True

    def stats(self, frame: pd.DataFrame) -> dict[str, int]:
        return {
            "total": len(self.alerts),
            "enabled": sum(1 for a in self.alerts if a.enabled),
            "matches": sum(a.matches(frame) for a in self.alerts if a.enabled),
        }


def describe(criteria: FilterCriteria) -> str:
    parts = []
    if criteria.search:
        parts.append(f"Search: {criteria.search}")
    if criteria.materials:
        parts.append(f"Material: {', '.join(criteria.materials)}")
    if criteria.architect:
        parts.append(f"Architect: {criteria.architect}")
    if criteria.borough not in ("", "all"):
        parts.append(f"Location: {criteria.borough}")
    if criteria.statuses:
        parts.append(f"Status: {', '.join(criteria.statuses)}")
    if criteria.date_window in DATE_WINDOW_LABELS and criteria.date_window != "all":
        parts.append(f"Received: {DATE_WINDOW_LABELS[criteria.date_window]}")
    return ", ".join(parts) or "All applications"
