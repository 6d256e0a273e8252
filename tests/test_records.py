from datetime import date

from planning_insights.records import (
    DECIDED_STATUSES,
    get_application,
    invariant_mask,
    load_applications,
    unique_values,
)

from tests.factories import build_frame, make_application


def test_shipped_dataset_loads_and_satisfies_invariants():
    frame = load_applications()
    assert len(frame) == 36
    assert frame["id"].is_unique
    assert invariant_mask(frame).all()
    decided = frame["status"].isin(DECIDED_STATUSES)
    assert (decided == frame["decision_date"].notna()).all()


def test_multi_valued_fields_are_tuples():
    frame = load_applications()
    assert frame.loc[frame["id"] == "1", "materials"].iloc[0] == ("Brick", "Glass", "Steel")
    no_features = frame.loc[frame["id"] == "8", "sustainability_features"].iloc[0]
    assert no_features == ()


def test_invalid_rows_are_dropped(tmp_path):
    header = (
        "id,reference,name,address,description,project_type,use_class,architect,developer,"
        "borough,neighbourhood,latitude,longitude,storeys,units,materials,"
        "sustainability_features,status,received_date,decision_date\n"
    )
    rows = [
        "a,R1,Ok,Addr,Desc,Type,C3,Arch,Dev,Camden,Town,51.5,-0.1,3,2,Brick,,Approved,2024-01-01,2024-02-01",
        "b,R2,Pending with decision,Addr,Desc,Type,C3,Arch,Dev,Camden,Town,51.5,-0.1,3,2,Brick,,Pending,2024-01-01,2024-02-01",
        "c,R3,Decided without date,Addr,Desc,Type,C3,Arch,Dev,Camden,Town,51.5,-0.1,3,2,Brick,,Refused,2024-01-01,",
        "d,R4,Decision before receipt,Addr,Desc,Type,C3,Arch,Dev,Camden,Town,51.5,-0.1,3,2,Brick,,Approved,2024-03-01,2024-02-01",
        "e,R5,No storeys,Addr,Desc,Type,C3,Arch,Dev,Camden,Town,51.5,-0.1,0,2,Brick,,Approved,2024-01-01,2024-02-01",
        "a,R6,Duplicate id,Addr,Desc,Type,C3,Arch,Dev,Camden,Town,51.5,-0.1,3,2,Brick,,Approved,2024-01-01,2024-02-01",
    ]
    path = tmp_path / "apps.csv"
    path.write_text(header + "\n".join(rows) + "\n")

    frame = load_applications(path)

    assert frame["id"].tolist() == ["a"]
    assert frame["reference"].tolist() == ["R1"]


def test_get_application_round_trips_dates():
    frame = build_frame(make_application(1), make_application(2, status="Pending"))

    decided = get_application(frame, "1")
    pending = get_application(frame, "2")

    assert decided.received_date == date(2024, 1, 10)
    assert decided.decision_date == date(2024, 2, 10)
    assert decided.is_decided
    assert pending.decision_date is None
    assert get_application(frame, "missing") is None


def test_unique_values_are_sorted_and_flattened():
    frame = build_frame(
        make_application(1, borough="Westminster", materials=("Glass", "Brick")),
        make_application(2, borough="Camden", materials=("CLT",)),
        make_application(3, borough="Westminster", materials=()),
    )

    values = unique_values(frame)

    assert values["boroughs"] == ["Camden", "Westminster"]
    assert values["materials"] == ["Brick", "CLT", "Glass"]
