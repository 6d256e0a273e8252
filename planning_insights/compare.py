from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from planning_insights.aggregations import decision_latency_days, percent, round_half_up
from planning_insights.records import unique_values

MAX_SELECTED = 3
DEFAULT_SELECTION = ("studio-finch", "brick-&-beam")

DEFAULT_INSIGHT = (
    "Comparison of architectural approaches, project types and sustainability strategies "
    "based on planning application data."
)

PAIR_INSIGHTS = {
    frozenset({"studio-finch", "brick-&-beam"}): (
        "Studio Finch specialise in central-London retrofit and adaptive reuse, with consistent "
        "approvals on complex heritage buildings and a sustainability baseline built on BREEAM "
        "certification and rainwater systems.\n\n"
        "Brick & Beam work at neighbourhood-housing scale: extensions, infills and community-led "
        "regeneration in areas like Dalston and Peckham, with frequent green roofs and air-source "
        "heat pumps.\n\n"
        "Studio Finch stand for institutional net-zero-by-reuse retrofit; Brick & Beam for "
        "grassroots urban housing. Both feature heavily in London's decarbonisation pipeline."
    ),
}


def architect_slug(name: str) -> str:
    return re.sub(r"\s+", "-", name.lower())


def pair_insight(first: str, second: str) -> str:
    return PAIR_INSIGHTS.get(frozenset({first, second}), DEFAULT_INSIGHT)


def _top(counter: Counter, n: int) -> list[str]:
    return [name for name, _ in counter.most_common(n)]


def _design_style(project_types: list[str]) -> str:
    if "Office Refurbishment" in project_types:
        return "Polished corporate retrofit with historic sensitivity"
    if "Residential Extension" in project_types:
        return "Brick-led contemporary infill with community tone"
    return "Contemporary mixed-use design"


def architect_profile(projects: pd.DataFrame, name: str) -> dict[str, Any]:
    """Profile of one architect from their slice of the record frame."""
    total = len(projects)
    statuses = projects["status"].value_counts()
    approved = int(statuses.get("Approved", 0))
    days = decision_latency_days(projects)

    materials = Counter(m for items in projects["materials"] for m in items)
    features = Counter(f for items in projects["sustainability_features"] for f in items)
    project_types = projects["project_type"].tolist()

    recent = [
        {
            "id": row.id,
            "name": row.name,
            "status": row.status.lower(),
            "borough": row.borough,
            "neighbourhood": row.neighbourhood,
            "type": row.project_type,
            "storeys": int(row.storeys),
            "sustainability": list(row.sustainability_features),
        }
        for row in projects.head(6).itertuples(index=False)
    ]

    return {
        "slug": architect_slug(name),
        "name": name,
        "projects": total,
        "approval_rate": percent(approved, total),
        "avg_storeys": round_half_up(projects["storeys"].sum() * 10 / total) / 10 if total else 0,
        "avg_decision_days": round_half_up(days.sum() / len(days)) if len(days) else 0,
        "top_materials": [[m, count] for m, count in materials.most_common(4)],
        "top_boroughs": _top(Counter(projects["borough"]), 3),
        "top_neighbourhoods": _top(Counter(projects["neighbourhood"]), 3),
        "core_use_classes": _top(Counter(projects["use_class"]), 2),
        "sustainability_focus": _top(features, 3),
        "recent_projects": recent,
        "specialties": list(dict.fromkeys(project_types))[:3],
        "design_style": _design_style(project_types),
        "status_breakdown": {
            "approved": approved,
            "pending": int(statuses.get("Pending", 0)),
            "refused": int(statuses.get("Refused", 0)),
        },
    }


def build_profiles(frame: pd.DataFrame) -> dict[str, dict[str, Any]]:
    return {
        architect_slug(name): architect_profile(frame.loc[frame["architect"] == name], name)
        for name in unique_values(frame)["architects"]
    }


@dataclass
class ArchitectComparison:
    frame: pd.DataFrame
    selected: list[str] = field(default_factory=list)
    profiles: dict[str, dict[str, Any]] = field(init=False)

    def __post_init__(self) -> None:
        self.profiles = build_profiles(self.frame)
        if not self.selected:
            self.selected = [slug for slug in DEFAULT_SELECTION if slug in self.profiles]

    def add(self, slug: str) -> bool:
        if slug not in self.profiles or slug in self.selected or len(self.selected) >= MAX_SELECTED:
            return False
        self.selected.append(slug)
        return True

    def remove(self, slug: str) -> None:
        if slug in self.selected:
            self.selected.remove(slug)

    def search(self, query: str, limit: int = 8) -> list[dict[str, Any]]:
        needle = query.lower()
        return [
            {"slug": slug, "name": p["name"], "projects": p["projects"]}
            for slug, p in self.profiles.items()
            if slug not in self.selected and needle in p["name"].lower()
        ][:limit]

    @property
    def architects(self) -> list[dict[str, Any]]:
        return [self.profiles[slug] for slug in self.selected if slug in self.profiles]

    @property
    def insight(self) -> str:
        if len(self.selected) < 2:
            return ""
        return pair_insight(self.selected[0], self.selected[1])

    def payload(self) -> dict[str, Any]:
        return {
            "selected": list(self.selected),
            "ready": len(self.architects) >= 2,
            "insight": self.insight,
            "architects": self.architects,
        }
