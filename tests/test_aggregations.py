from datetime import date, timedelta

import pytest

from planning_insights import aggregations as agg

from tests.factories import build_frame, make_application

RECEIVED = date(2024, 1, 1)


def _decided_after(idx, days, **overrides):
    return make_application(idx, received_date=RECEIVED, decision_date=RECEIVED + timedelta(days=days), **overrides)


def test_percent_rounds_half_up():
    assert agg.percent(1, 8) == 13
    assert agg.percent(5, 8) == 63
    assert agg.percent(1, 3) == 33
    assert agg.percent(2, 3) == 67
    assert agg.round_half_up(2.5) == 3


def test_zero_denominators_give_zero(empty_frame):
    assert agg.percent(0, 0) == 0
    assert agg.group_approval_rates(empty_frame, "borough") == []
    stats = agg.overall_stats(empty_frame)
    assert stats["total"] == 0
    assert stats["approval_rate"] == 0
    assert stats["avg_decision_days"] == 0
    assert stats["sustainability_adoption"] == 0
    assert all(row["percent"] == 0 for row in agg.status_distribution(empty_frame))
    assert agg.authority_speed(empty_frame) == []
    assert agg.sustainability_trend(empty_frame) == []
    assert agg.materials_frequency(empty_frame) == []
    assert agg.collaboration_pairs(empty_frame) == []
    assert agg.trend_insights(empty_frame) == []


def test_ten_record_scenario(sample_frame):
    stats = agg.overall_stats(sample_frame)
    distribution = {row["status"]: (row["count"], row["percent"]) for row in agg.status_distribution(sample_frame)}

    assert stats["approval_rate"] == 60
    assert distribution == {
        "Approved": (6, 60),
        "Pending": (2, 20),
        "Refused": (2, 20),
        "Withdrawn": (0, 0),
    }


def test_status_percentages_sum_close_to_100():
    frame = build_frame(
        make_application(1, status="Approved"),
        make_application(2, status="Pending"),
        make_application(3, status="Refused"),
    )
    total = sum(row["percent"] for row in agg.status_distribution(frame))
    assert abs(total - 100) <= 3


@pytest.mark.parametrize("key", agg.GROUP_KEYS)
def test_groups_partition_the_record_set(sample_frame, key):
    groups = agg.group_approval_rates(sample_frame, key)
    assert sum(g["total"] for g in groups) == len(sample_frame)


def test_group_rates_and_enumeration_order():
    frame = build_frame(
        make_application(1, borough="Westminster"),
        make_application(2, borough="Camden", status="Refused"),
        make_application(3, borough="Camden"),
    )
    groups = agg.group_approval_rates(frame, "borough")
    assert groups == [
        {"borough": "Camden", "total": 2, "approved": 1, "rate": 50},
        {"borough": "Westminster", "total": 1, "approved": 1, "rate": 100},
    ]


def test_unknown_grouping_key_is_rejected(sample_frame):
    with pytest.raises(ValueError):
        agg.group_approval_rates(sample_frame, "status")


def test_sparse_groups_are_suppressed_even_with_highest_rate():
    frame = build_frame(
        make_application(1, project_type="Office Refurbishment"),
        make_application(2, project_type="Office Refurbishment"),
        make_application(3, project_type="New Build Residential"),
        make_application(4, project_type="New Build Residential"),
        make_application(5, project_type="New Build Residential", status="Refused"),
    )
    ranked = agg.approval_by_project_type(frame)

    assert [row["project_type"] for row in ranked] == ["New Build Residential"]
    assert ranked[0]["rate"] == 67


def test_project_type_label_trims_location_suffix():
    assert agg.project_type_label("Mixed-Use Development at Kings Cross") == "Mixed-Use Development"
    assert len(agg.project_type_label("A very long project type name that keeps going")) == 25


def test_top_architects_rank_by_project_count():
    frame = build_frame(
        make_application(1, architect="Mae Architects"),
        make_application(2, architect="Studio Finch", status="Refused"),
        make_application(3, architect="Studio Finch"),
    )
    top = agg.top_architects(frame)
    assert [row["architect"] for row in top] == ["Studio Finch", "Mae Architects"]
    assert top[0]["rate"] == 50


def test_latency_bucket_boundaries():
    frame = build_frame(_decided_after(1, 30), _decided_after(2, 31), _decided_after(3, 181), _decided_after(4, 180))

    counts = {row["range"]: row["count"] for row in agg.decision_time_distribution(frame)}

    assert agg.latency_bucket(30) == "0-30d"
    assert agg.latency_bucket(31) == "31-60d"
    assert counts == {
        "0-30d": 1,
        "31-60d": 1,
        "61-90d": 0,
        "91-120d": 0,
        "121-180d": 1,
        "180+d": 1,
    }


def test_latency_ignores_pending_records():
    frame = build_frame(_decided_after(1, 10), make_application(2, status="Pending"))
    assert agg.decision_latency_days(frame).tolist() == [10]


def test_authority_speed_orders_fastest_first_with_stable_ties():
    frame = build_frame(
        _decided_after(1, 40, borough="Camden"),
        _decided_after(2, 40, borough="Barnet"),
        _decided_after(3, 10, borough="Hackney"),
        _decided_after(4, 20, borough="Hackney"),
        make_application(5, borough="Islington", status="Pending"),
    )

    speed = agg.authority_speed(frame)

    assert [row["borough"] for row in speed] == ["Hackney", "Barnet", "Camden"]
    assert speed[0] == {"borough": "Hackney", "avg_days": 15, "count": 2}


def test_frequency_percent_uses_record_count():
    frame = build_frame(
        make_application(1, materials=("Brick", "Glass", "Steel")),
        make_application(2, materials=("Brick",)),
    )
    assert agg.materials_frequency(frame) == [
        {"name": "Brick", "count": 2, "percent": 100},
        {"name": "Glass", "count": 1, "percent": 50},
        {"name": "Steel", "count": 1, "percent": 50},
    ]


def test_sustainability_frequency_sorted_by_count():
    frame = build_frame(
        make_application(1, sustainability_features=("Solar PV",)),
        make_application(2, sustainability_features=("Green Roof", "Solar PV")),
        make_application(3),
    )
    rows = agg.sustainability_frequency(frame)
    assert [(r["name"], r["count"], r["percent"]) for r in rows] == [("Solar PV", 2, 67), ("Green Roof", 1, 33)]


def test_monthly_sustainability_trend_ignores_year():
    frame = build_frame(
        make_application(1, received_date=date(2024, 1, 5), sustainability_features=("Solar PV",)),
        make_application(2, received_date=date(2023, 1, 20)),
        make_application(3, received_date=date(2024, 3, 2), sustainability_features=("Green Roof",)),
    )
    assert agg.sustainability_trend(frame) == [
        {"month": "Jan", "total": 2, "with_features": 1, "percent": 50},
        {"month": "Mar", "total": 1, "with_features": 1, "percent": 100},
    ]


def test_height_distribution_applies_threshold():
    frame = build_frame(
        make_application(1, borough="Camden", storeys=4),
        make_application(2, borough="Camden", storeys=5),
        make_application(3, borough="Camden", storeys=5),
        make_application(4, borough="Westminster", storeys=30),
    )
    assert agg.height_distribution(frame) == [{"borough": "Camden", "avg_storeys": 4.7, "total": 3}]


def test_collaboration_pairs_top_eight():
    records = [make_application(i, architect=f"Architect {i}", developer="Peabody") for i in range(1, 11)]
    records += [make_application(11, architect="Architect 5", developer="Peabody")]
    pairs = agg.collaboration_pairs(build_frame(*records))

    assert len(pairs) == 8
    assert pairs[0] == {"architect": "Architect 5", "developer": "Peabody", "collaborations": 2}
    assert pairs[1]["architect"] == "Architect 1"


def test_overall_stats_scalars():
    frame = build_frame(
        _decided_after(1, 10, architect="A", developer="X", borough="Camden", units=5,
                       sustainability_features=("Solar PV",)),
        _decided_after(2, 21, architect="B", developer="X", borough="Hackney", units=7, status="Refused"),
        make_application(3, architect="A", developer="Y", borough="Camden", units=0, status="Pending"),
    )
    stats = agg.overall_stats(frame)

    assert stats["total"] == 3
    assert (stats["approved"], stats["pending"], stats["refused"], stats["withdrawn"]) == (1, 1, 1, 0)
    assert stats["approval_rate"] == 33
    assert stats["avg_decision_days"] == 16
    assert (stats["unique_architects"], stats["unique_developers"], stats["unique_boroughs"]) == (2, 2, 2)
    assert stats["total_units"] == 12
    assert stats["sustainability_adoption"] == 33


def test_trend_insights_cover_each_topic(sample_frame):
    topics = [item["topic"] for item in agg.trend_insights(sample_frame)]
    assert topics == ["materials", "sustainability", "geospatial", "performance", "firms", "outcomes"]
