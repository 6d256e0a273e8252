"""
Summary statistics over a (possibly filtered) application frame.

Every function takes the frame explicitly and returns plain JSON-ready
lists/dicts. Percentages are rounded half-up to whole numbers and any
ratio with a zero denominator is 0.
"""

from __future__ import annotations

import math
import re
from typing import Any

import numpy as np
import pandas as pd

from planning_insights.records import STATUSES

GROUP_KEYS = ("project_type", "borough", "architect", "developer")
MIN_GROUP_SIZE = 3

LATENCY_BUCKETS = [
    ("0-30d", 0, 30),
    ("31-60d", 31, 60),
    ("61-90d", 61, 90),
    ("91-120d", 91, 120),
    ("121-180d", 121, 180),
    ("180+d", 181, None),
]

MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percent(part: float, whole: float) -> int:
    return round_half_up(part * 100 / whole) if whole else 0


def _percent_series(part: pd.Series, whole: pd.Series | int) -> pd.Series:
    whole_arr = np.asarray(whole, dtype=float)
    safe = np.where(whole_arr > 0, whole_arr, 1)
    values = np.where(whole_arr > 0, np.floor(part.to_numpy(dtype=float) * 100 / safe + 0.5), 0)
    return pd.Series(values, index=part.index).astype(int)


# ---- activity & performance ----


def group_approval_rates(frame: pd.DataFrame, key: str) -> list[dict[str, Any]]:
    """
    Partition by ``key`` and compute count and approval rate per group.

    Groups come out in enumeration (sorted) order and their totals always
    sum to ``len(frame)``.
    """
    if key not in GROUP_KEYS:
        raise ValueError(f"Unsupported grouping key: {key}")

    grouped = (
        frame.assign(is_approved=frame["status"].eq("Approved"))
        .groupby(key, sort=True)
        .agg(total=("id", "size"), approved=("is_approved", "sum"))
        .reset_index()
    )
    grouped["approved"] = grouped["approved"].astype(int)
    grouped["rate"] = _percent_series(grouped["approved"], grouped["total"])
    return grouped.to_dict("records")


def top_groups(
    groups: list[dict[str, Any]],
    min_count: int = MIN_GROUP_SIZE,
    limit: int | None = None,
    by: str = "rate",
) -> list[dict[str, Any]]:
    """Drop groups smaller than ``min_count``, then rank descending by ``by``."""
    kept = [g for g in groups if g["total"] >= min_count]
    kept.sort(key=lambda g: g[by], reverse=True)
    return kept[:limit] if limit is not None else kept


def project_type_label(project_type: str) -> str:
    return re.sub(r" (at|in) .*", "", project_type)[:25]


def approval_by_project_type(frame: pd.DataFrame, limit: int = 8) -> list[dict[str, Any]]:
    ranked = top_groups(group_approval_rates(frame, "project_type"), limit=limit)
    return [{**row, "label": project_type_label(row["project_type"])} for row in ranked]


def approval_by_borough(frame: pd.DataFrame) -> list[dict[str, Any]]:
    return top_groups(group_approval_rates(frame, "borough"), min_count=0)


def top_architects(frame: pd.DataFrame, limit: int = 10) -> list[dict[str, Any]]:
    return top_groups(group_approval_rates(frame, "architect"), min_count=0, limit=limit, by="total")


def top_developers(frame: pd.DataFrame, limit: int = 10) -> list[dict[str, Any]]:
    return top_groups(group_approval_rates(frame, "developer"), min_count=0, limit=limit, by="total")


def decision_latency_days(frame: pd.DataFrame) -> pd.Series:
    """Whole days from receipt to decision, for decided applications only."""
    decided = frame.loc[frame["decision_date"].notna()]
    return (decided["decision_date"] - decided["received_date"]).dt.days.astype(int)


def latency_bucket(days: int) -> str | None:
    for label, low, high in LATENCY_BUCKETS:
        if days >= low and (high is None or days <= high):
            return label
    return None


def decision_time_distribution(frame: pd.DataFrame) -> list[dict[str, Any]]:
    days = decision_latency_days(frame)
    buckets = []
    for label, low, high in LATENCY_BUCKETS:
        in_bucket = days >= low
        if high is not None:
            in_bucket = in_bucket & (days <= high)
        buckets.append({"range": label, "min": low, "max": high, "count": int(in_bucket.sum())})
    return buckets


def authority_speed(frame: pd.DataFrame, limit: int | None = 10) -> list[dict[str, Any]]:
    """Boroughs ranked fastest first by mean decision latency; ties keep borough order."""
    days = decision_latency_days(frame)
    if days.empty:
        return []

    grouped = (
        frame.loc[days.index, ["borough"]]
        .assign(days=days)
        .groupby("borough", sort=True)["days"]
        .agg(total_days="sum", decided="count")
        .reset_index()
    )
    grouped["avg_days"] = [round_half_up(s / c) for s, c in zip(grouped["total_days"], grouped["decided"])]
    grouped = grouped.sort_values("avg_days", kind="stable")
    if limit is not None:
        grouped = grouped.head(limit)
    return [
        {"borough": row.borough, "avg_days": int(row.avg_days), "count": int(row.decided)}
        for row in grouped.itertuples(index=False)
    ]


def status_distribution(frame: pd.DataFrame) -> list[dict[str, Any]]:
    """Count and percent for every status, zero counts included, rounded independently."""
    total = len(frame)
    counts = frame["status"].value_counts()
    out = []
    for status in STATUSES:
        count = int(counts.get(status, 0))
        out.append({"status": status, "count": count, "percent": percent(count, total)})
    return out


# ---- design, materials & sustainability ----


def _frequency(frame: pd.DataFrame, column: str) -> list[dict[str, Any]]:
    values = frame[column].explode().dropna()
    if values.empty:
        return []
    counts = values.groupby(values, sort=False).size().sort_values(ascending=False, kind="stable")
    total = len(frame)
    return [{"name": name, "count": int(count), "percent": percent(count, total)} for name, count in counts.items()]


def materials_frequency(frame: pd.DataFrame) -> list[dict[str, Any]]:
    return _frequency(frame, "materials")


def sustainability_frequency(frame: pd.DataFrame) -> list[dict[str, Any]]:
    return _frequency(frame, "sustainability_features")


def has_sustainability(frame: pd.DataFrame) -> pd.Series:
    return frame["sustainability_features"].map(len).astype(int) > 0


def sustainability_trend(frame: pd.DataFrame) -> list[dict[str, Any]]:
    """Share of applications with sustainability features per calendar month, ignoring year."""
    if frame.empty:
        return []
    monthly = (
        pd.DataFrame({"month": frame["received_date"].dt.month, "with_features": has_sustainability(frame)})
        .dropna(subset=["month"])
        .groupby("month", sort=True)
        .agg(total=("with_features", "size"), with_features=("with_features", "sum"))
    )
    return [
        {
            "month": MONTHS[int(month) - 1],
            "total": int(row.total),
            "with_features": int(row.with_features),
            "percent": percent(row.with_features, row.total),
        }
        for month, row in monthly.iterrows()
    ]


def height_distribution(
    frame: pd.DataFrame, min_count: int = MIN_GROUP_SIZE, limit: int | None = 10
) -> list[dict[str, Any]]:
    grouped = frame.groupby("borough", sort=True)["storeys"].agg(storeys_sum="sum", total="count").reset_index()
    rows = [
        {
            "borough": row.borough,
            "avg_storeys": round_half_up(row.storeys_sum * 10 / row.total) / 10,
            "total": int(row.total),
        }
        for row in grouped.itertuples(index=False)
        if row.total >= min_count
    ]
    rows.sort(key=lambda r: r["avg_storeys"], reverse=True)
    return rows[:limit] if limit is not None else rows


# ---- firms ----


def collaboration_pairs(frame: pd.DataFrame, limit: int = 8) -> list[dict[str, Any]]:
    pairs = (
        frame.groupby(["architect", "developer"], sort=False)
        .size()
        .sort_values(ascending=False, kind="stable")
        .head(limit)
    )
    return [
        {"architect": architect, "developer": developer, "collaborations": int(count)}
        for (architect, developer), count in pairs.items()
    ]


# ---- headline numbers ----


def _distinct(series: pd.Series) -> int:
    return int(series[series != ""].nunique())


def overall_stats(frame: pd.DataFrame) -> dict[str, Any]:
    total = len(frame)
    counts = frame["status"].value_counts()
    approved = int(counts.get("Approved", 0))
    days = decision_latency_days(frame)

    return {
        "total": total,
        "approved": approved,
        "pending": int(counts.get("Pending", 0)),
        "refused": int(counts.get("Refused", 0)),
        "withdrawn": int(counts.get("Withdrawn", 0)),
        "approval_rate": percent(approved, total),
        "avg_decision_days": round_half_up(days.sum() / len(days)) if len(days) else 0,
        "unique_architects": _distinct(frame["architect"]),
        "unique_developers": _distinct(frame["developer"]),
        "unique_boroughs": _distinct(frame["borough"]),
        "total_units": int(frame["units"].sum()),
        "sustainability_adoption": percent(int(has_sustainability(frame).sum()), total),
    }


def trend_insights(frame: pd.DataFrame) -> list[dict[str, str]]:
    """Short templated observations for the insights tab; skips any with no data behind it."""
    if frame.empty:
        return []

    stats = overall_stats(frame)
    materials = materials_frequency(frame)
    features = sustainability_frequency(frame)
    boroughs = approval_by_borough(frame)
    heights = height_distribution(frame)
    speed = authority_speed(frame)
    by_type = approval_by_project_type(frame)
    architects = top_architects(frame)
    developers = top_developers(frame)
    pairs = collaboration_pairs(frame)

    insights = []
    if materials:
        text = (
            f"{materials[0]['name']} leads material specifications with {materials[0]['count']} "
            f"applications ({materials[0]['percent']}% of total)."
        )
        if len(materials) > 1:
            text += f" {materials[1]['name']} follows at {materials[1]['count']} projects."
        insights.append({"topic": "materials", "text": text})

    text = f"{stats['sustainability_adoption']}% of applications include sustainability features."
    if features:
        text += f" {features[0]['name']} appears most frequently ({features[0]['count']} projects)."
    insights.append({"topic": "sustainability", "text": text})

    if boroughs:
        text = (
            f"{boroughs[0]['borough']} shows the highest approval rate at {boroughs[0]['rate']}% "
            f"across {boroughs[0]['total']} applications."
        )
        if heights:
            text += (
                f" {heights[0]['borough']} leads in building height with an average of "
                f"{heights[0]['avg_storeys']} storeys."
            )
        insights.append({"topic": "geospatial", "text": text})

    if speed:
        text = (
            f"Average decision time is {stats['avg_decision_days']} days. "
            f"{speed[0]['borough']} decides fastest at {speed[0]['avg_days']} days on average."
        )
        if by_type:
            text += f" {by_type[0]['label']} projects show the highest approval rate at {by_type[0]['rate']}%."
        insights.append({"topic": "performance", "text": text})

    if architects and developers and pairs:
        insights.append(
            {
                "topic": "firms",
                "text": (
                    f"{architects[0]['architect']} leads with {architects[0]['total']} projects and a "
                    f"{architects[0]['rate']}% approval rate. Top developer {developers[0]['developer']} has "
                    f"{developers[0]['total']} applications. {pairs[0]['architect']} and {pairs[0]['developer']} "
                    f"collaborate most often ({pairs[0]['collaborations']} joint projects)."
                ),
            }
        )

    insights.append(
        {
            "topic": "outcomes",
            "text": (
                f"{stats['approved']} applications approved vs {stats['refused']} refused, a "
                f"{stats['approval_rate']}% overall approval rate. {stats['pending']} pending decision."
            ),
        }
    )
    return insights
