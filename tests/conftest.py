import pytest

from planning_insights.records import frame_from_records
from tests.factories import SAMPLE_STATUSES, build_frame, make_application


@pytest.fixture
def sample_frame():
    """Ten applications: six approved, two pending, two refused; one by Foster; two with CLT."""
    records = []
    for idx, status in enumerate(SAMPLE_STATUSES, start=1):
        overrides = {"status": status}
        if idx == 4:
            overrides["architect"] = "Foster + Partners"
        if idx == 2:
            overrides["materials"] = ("Brick", "CLT")
        if idx == 7:
            overrides["materials"] = ("CLT", "Glass")
        records.append(make_application(idx, **overrides))
    return build_frame(*records)


@pytest.fixture
def empty_frame():
    return frame_from_records([])
