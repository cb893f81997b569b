"""
Survival data preparation for the moth temperature experiment.

Loads one row per moth, derives adult survival duration at half-day
resolution and reshapes each individual into contiguous half-day
start/stop intervals for a counting-process Cox model.
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import pandas as pd

from .exceptions import DataValidationError
from .utils import normalize_columns, parse_sex, parse_time_of_day, rename_aliases

logger = logging.getLogger(__name__)

HALF_DAY = 0.5

# stop time used when a moth dies in the same half-day period it emerged in;
# the hazards model needs start < stop for every interval
ZERO_DURATION_OFFSET = 1e-6

REQUIRED_COLUMNS = {
    "id",
    "sex",
    "acclimation_temp",
    "exposure_temp",
    "emergence_date",
    "emergence_time",
    "death_date",
    "death_time",
}

TIMESTAMP_COLUMNS = ["emergence_date", "emergence_time", "death_date", "death_time"]
TREATMENT_COLUMNS = ["sex", "acclimation_temp", "exposure_temp"]


def load_records(path: str | Path, sheet_name: str | int = 0) -> pd.DataFrame:
    """
    Load and prepare the individual records from CSV or Excel.

    Parameters
    ----------
    path : str | Path
        Path to the experiment table (.csv, .xlsx or .xls)
    sheet_name : str | int
        Sheet to read when the input is an Excel workbook

    Returns
    -------
    pd.DataFrame
        One row per individual with parsed dates, AM/PM flags, sex codes and
        numeric temperatures / pupal mass
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    if path.suffix.lower() in (".xlsx", ".xls"):
        df = pd.read_excel(path, sheet_name=sheet_name)
    else:
        df = pd.read_csv(path)

    return prepare_records(df)


def prepare_records(raw: pd.DataFrame) -> pd.DataFrame:
    """Normalize columns and parse field types of an already-loaded table."""
    df = rename_aliases(normalize_columns(raw))

    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        raise DataValidationError(f"Missing required columns: {sorted(missing)}")

    df = df.copy()
    df["id"] = df["id"].where(df["id"].isna(), df["id"].astype(str).str.strip())

    for col in ("emergence_date", "death_date"):
        df[col] = pd.to_datetime(df[col], errors="coerce").dt.normalize()
    if df["emergence_date"].isna().all():
        raise DataValidationError("All emergence_date values failed to parse.")

    for col in ("emergence_time", "death_time"):
        df[col] = df[col].map(parse_time_of_day)

    df["sex"] = df["sex"].map(parse_sex)

    for col in ("acclimation_temp", "exposure_temp"):
        df[col] = pd.to_numeric(df[col], errors="coerce")

    if "pupal_mass" in df.columns:
        df["pupal_mass"] = pd.to_numeric(df["pupal_mass"], errors="coerce")
    else:
        df["pupal_mass"] = np.nan

    if "notes" not in df.columns:
        df["notes"] = pd.NA

    return df.reset_index(drop=True)


def survival_duration(emergence_date, emergence_time, death_date, death_time) -> float:
    """
    Adult lifespan in days at half-day resolution.

    An afternoon emergence loses half a day, an afternoon death gains half a
    day: emerging on day 10 AM and dying on day 14 PM gives 4.5 days.
    Returns NaN when any part of either timestamp is missing.
    """
    parts = (emergence_date, emergence_time, death_date, death_time)
    if any(pd.isna(p) for p in parts):
        return np.nan

    days = (pd.Timestamp(death_date).normalize() - pd.Timestamp(emergence_date).normalize()).days
    adjust = (HALF_DAY if death_time == "PM" else 0.0) - (HALF_DAY if emergence_time == "PM" else 0.0)
    return float(days + adjust)


def add_survival_durations(
    records: pd.DataFrame,
    required: list[str] | None = None,
) -> pd.DataFrame:
    """
    Keep complete records and add `duration` (days) and `event` columns.

    Rows missing a timestamp part or any of `required` (default: sex and both
    temperatures) are dropped and counted in the log. Every retained moth was
    observed dying, so `event` is 1 throughout.
    """
    if required is None:
        required = TREATMENT_COLUMNS

    need = ["id"] + TIMESTAMP_COLUMNS + list(required)
    complete = records[need].notna().all(axis=1)
    dropped = int((~complete).sum())
    if dropped:
        logger.warning("Excluding %d record(s) with missing timestamps or covariates", dropped)

    df = records.loc[complete].copy()

    df["duration"] = [
        survival_duration(*stamps)
        for stamps in df[TIMESTAMP_COLUMNS].itertuples(index=False, name=None)
    ]

    negative = df[df["duration"] < 0]
    if not negative.empty:
        raise DataValidationError(
            "Death recorded before emergence for id(s): "
            f"{negative['id'].tolist()[:10]}"
        )

    dup = df["id"].duplicated(keep=False)
    if dup.any():
        raise DataValidationError(f"Duplicate individual ids: {sorted(df.loc[dup, 'id'].unique())[:10]}")

    df["event"] = 1
    logger.info("Derived survival durations for %d individual(s)", len(df))
    return df.reset_index(drop=True)


def split_half_days(
    duration: float,
    step: float = HALF_DAY,
    zero_offset: float = ZERO_DURATION_OFFSET,
) -> list[tuple[float, float, int]]:
    """
    Partition one lifespan into (start, stop, event) steps of `step` days.

    The steps are contiguous and increasing, the last one ends at `duration`
    and is the only one with event = 1. A zero duration yields the single
    interval (0, zero_offset] with event = 1.
    """
    if duration is None or not np.isfinite(duration):
        raise ValueError(f"Survival duration must be finite, got {duration!r}")
    if duration < 0:
        raise ValueError(f"Survival duration must be non-negative, got {duration}")

    n_float = duration / step
    n_steps = int(round(n_float))
    if not np.isclose(n_float, n_steps):
        raise ValueError(f"Survival duration {duration} is not a multiple of {step}")

    if n_steps == 0:
        return [(0.0, float(zero_offset), 1)]

    return [
        (i * step, (i + 1) * step, int(i == n_steps - 1))
        for i in range(n_steps)
    ]


def build_intervals(
    survival_df: pd.DataFrame,
    covariates: list[str] | None = None,
    id_col: str = "id",
    duration_col: str = "duration",
) -> pd.DataFrame:
    """
    Expand one row per individual into half-day start/stop rows.

    Parameters
    ----------
    survival_df : pd.DataFrame
        Output of add_survival_durations
    covariates : list[str] | None
        Columns copied onto every interval. Default: sex and both temperatures
    id_col, duration_col : str
        Subject identifier and survival duration columns

    Returns
    -------
    pd.DataFrame
        Columns: id, start, stop, event, covariates; sorted by (id, start)
    """
    if covariates is None:
        covariates = TREATMENT_COLUMNS

    if survival_df[id_col].duplicated().any():
        raise DataValidationError("Interval reshaping needs one row per individual id")

    cols = [id_col, "start", "stop", "event"] + list(covariates)
    rows = []
    for rec in survival_df.to_dict("records"):
        carried = {c: rec[c] for c in covariates}
        for start, stop, event in split_half_days(rec[duration_col]):
            rows.append({id_col: rec[id_col], "start": start, "stop": stop, "event": event, **carried})

    out = pd.DataFrame(rows, columns=cols)
    return out.sort_values([id_col, "start"], kind="mergesort").reset_index(drop=True)


def process_survival_data(
    path: str | Path,
    output_path: str | Path | None = None,
) -> dict[str, pd.DataFrame]:
    """
    Load the experiment table and build the survival and interval tables.

    Parameters
    ----------
    path : str | Path
        Experiment table (.csv or Excel)
    output_path : str | Path | None
        Optional path to save an Excel workbook with both tables

    Returns
    -------
    dict[str, pd.DataFrame]
        Keys: "records", "survival", "intervals"
    """
    records = load_records(path)
    survival = add_survival_durations(records)
    intervals = build_intervals(survival)

    if output_path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
            survival.to_excel(writer, index=False, sheet_name="survival_data")
            intervals.to_excel(writer, index=False, sheet_name="intervals")

    return {"records": records, "survival": survival, "intervals": intervals}
