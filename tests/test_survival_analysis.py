"""
Tests for survival durations and half-day interval reshaping.
"""

import numpy as np
import pandas as pd
import pytest

from moth_survival.exceptions import DataValidationError
from moth_survival.survival_analysis import (
    ZERO_DURATION_OFFSET,
    add_survival_durations,
    build_intervals,
    load_records,
    process_survival_data,
    split_half_days,
    survival_duration,
)


def test_duration_am_to_pm():
    d = survival_duration(pd.Timestamp("2023-06-10"), "AM", pd.Timestamp("2023-06-14"), "PM")
    assert d == 4.5


@pytest.mark.parametrize(
    "e_time, d_time, expected",
    [("AM", "AM", 4.0), ("PM", "PM", 4.0), ("PM", "AM", 3.5), ("AM", "PM", 4.5)],
)
def test_duration_half_day_adjustment(e_time, d_time, expected):
    assert survival_duration("2023-06-10", e_time, "2023-06-14", d_time) == expected


def test_duration_missing_part_is_nan():
    assert np.isnan(survival_duration("2023-06-10", "AM", None, "PM"))
    assert np.isnan(survival_duration("2023-06-10", np.nan, "2023-06-11", "PM"))


def test_split_example_individual():
    steps = split_half_days(4.5)
    assert len(steps) == 9
    assert steps[0] == (0.0, 0.5, 0)
    assert steps[-1] == (4.0, 4.5, 1)
    assert [e for _, _, e in steps].count(1) == 1


def test_split_contiguous_and_increasing():
    steps = split_half_days(7.0)
    for (s0, e0, _), (s1, e1, _) in zip(steps, steps[1:]):
        assert e0 == s1
        assert s0 < e0 < e1
    assert sum(e - s for s, e, _ in steps) == pytest.approx(7.0)


def test_split_zero_duration():
    assert split_half_days(0.0) == [(0.0, ZERO_DURATION_OFFSET, 1)]


@pytest.mark.parametrize("bad", [-0.5, np.nan, np.inf, 1.25])
def test_split_rejects_invalid_durations(bad):
    with pytest.raises(ValueError):
        split_half_days(bad)


def test_records_with_missing_timestamps_are_excluded(make_records):
    records = make_records(
        ("a", "2023-06-10", "AM", "2023-06-14", "PM"),
        ("b", "2023-06-10", "AM", None, None),
        ("c", "2023-06-11", None, "2023-06-12", "AM"),
    )
    survival = add_survival_durations(records)
    assert survival["id"].tolist() == ["a"]
    assert survival["duration"].tolist() == [4.5]
    assert survival["event"].tolist() == [1]


def test_records_with_missing_covariate_are_excluded(make_records):
    records = make_records(
        ("a", "2023-06-10", "AM", "2023-06-14", "PM"),
        ("b", "2023-06-10", "AM", "2023-06-12", "PM", "?"),
    )
    assert add_survival_durations(records)["id"].tolist() == ["a"]


def test_death_before_emergence_is_an_input_error(make_records):
    records = make_records(("a", "2023-06-10", "PM", "2023-06-10", "AM"))
    with pytest.raises(DataValidationError, match="before emergence"):
        add_survival_durations(records)


def test_duplicate_ids_rejected(make_records):
    records = make_records(
        ("a", "2023-06-10", "AM", "2023-06-14", "PM"),
        ("a", "2023-06-11", "AM", "2023-06-12", "PM"),
    )
    with pytest.raises(DataValidationError, match="Duplicate"):
        add_survival_durations(records)


def test_identical_covariates_stay_independent_subjects(make_records):
    records = make_records(
        ("a", "2023-06-10", "AM", "2023-06-12", "AM"),
        ("b", "2023-06-10", "AM", "2023-06-11", "AM"),
    )
    intervals = build_intervals(add_survival_durations(records))
    counts = intervals.groupby("id").size()
    assert counts["a"] == 4
    assert counts["b"] == 2
    assert intervals.groupby("id")["event"].sum().tolist() == [1, 1]
    assert intervals.groupby("id")["stop"].max().tolist() == [2.0, 1.0]


def test_same_half_day_death_gives_single_interval(make_records):
    records = make_records(("a", "2023-06-10", "PM", "2023-06-10", "PM"))
    intervals = build_intervals(add_survival_durations(records))
    assert len(intervals) == 1
    row = intervals.iloc[0]
    assert row["start"] == 0.0
    assert row["stop"] == ZERO_DURATION_OFFSET
    assert row["event"] == 1


def test_interval_invariants_on_experiment(survival, intervals):
    assert (survival["duration"] >= 0).all()
    assert (intervals["start"] < intervals["stop"]).all()

    for id_, grp in intervals.groupby("id"):
        duration = survival.loc[survival["id"] == id_, "duration"].iloc[0]
        assert grp["start"].is_monotonic_increasing
        assert (grp["start"].iloc[1:].to_numpy() == grp["stop"].iloc[:-1].to_numpy()).all()
        assert (grp["stop"] - grp["start"]).sum() == pytest.approx(duration, abs=ZERO_DURATION_OFFSET)
        assert grp["event"].sum() == 1
        assert grp["event"].iloc[-1] == 1


def test_intervals_carry_covariates(survival, intervals):
    assert {"sex", "acclimation_temp", "exposure_temp"} <= set(intervals.columns)
    merged = intervals.merge(survival[["id", "exposure_temp"]], on="id", suffixes=("", "_subject"))
    assert (merged["exposure_temp"] == merged["exposure_temp_subject"]).all()


def test_load_records_drops_incomplete_synthetic_rows(records, survival):
    assert len(records) == 192
    assert len(survival) == 189


def test_load_records_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_records(tmp_path / "nope.csv")


def test_load_records_missing_columns(tmp_path):
    path = tmp_path / "bad.csv"
    pd.DataFrame({"ID": [1], "Sex": ["F"]}).to_csv(path, index=False)
    with pytest.raises(DataValidationError, match="Missing required columns"):
        load_records(path)


def test_load_records_from_excel(tmp_path, raw_moths):
    path = tmp_path / "moths.xlsx"
    raw_moths.to_excel(path, index=False)
    records = load_records(path)
    assert len(records) == len(raw_moths)
    assert set(records["sex"].dropna()) == {"F", "M"}


def test_process_survival_data_writes_workbook(tmp_path, moth_csv):
    out = tmp_path / "intervals.xlsx"
    tables = process_survival_data(moth_csv, output_path=out)
    assert set(tables) == {"records", "survival", "intervals"}
    assert out.exists()
    assert pd.ExcelFile(out).sheet_names == ["survival_data", "intervals"]
