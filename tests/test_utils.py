"""
Tests for column normalisation and field parsers.
"""

import numpy as np
import pandas as pd
import pytest

from moth_survival.utils import normalize_columns, parse_sex, parse_time_of_day, rename_aliases


def test_normalize_columns():
    df = pd.DataFrame(columns=[" Emergence Date", "Pupal-Mass", "Death.Time"])
    assert list(normalize_columns(df).columns) == ["emergence_date", "pupal_mass", "death_time"]


def test_rename_aliases_prefers_canonical():
    df = pd.DataFrame(columns=["moth_id", "acclimation", "exposure_temperature", "exposure_temp"])
    out = rename_aliases(df)
    assert "id" in out.columns
    assert "acclimation_temp" in out.columns
    # canonical column present: alias left alone
    assert "exposure_temperature" in out.columns


@pytest.mark.parametrize(
    "value, expected",
    [("AM", "AM"), ("pm", "PM"), (" a.m. ", "AM"), ("Afternoon", "PM"), (0, "AM"), (1, "PM"), ("1.0", "PM")],
)
def test_parse_time_of_day(value, expected):
    assert parse_time_of_day(value) == expected


@pytest.mark.parametrize("value", [None, np.nan, "noon", 2, ""])
def test_parse_time_of_day_unknown(value):
    assert pd.isna(parse_time_of_day(value))


def test_parse_sex():
    assert parse_sex("female") == "F"
    assert parse_sex(" M ") == "M"
    assert pd.isna(parse_sex("unknown"))
    assert pd.isna(parse_sex(None))
