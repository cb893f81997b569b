"""
Utility functions for data processing and normalization.
"""

from typing import Union

import numpy as np
import pandas as pd


# canonical column name -> accepted spellings after normalize_columns
COLUMN_ALIASES = {
    "id": ["individual_id", "moth_id", "ind", "individual"],
    "pupal_mass": ["mass", "pupa_mass", "pupal_mass_mg", "pupal_mass_g"],
    "acclimation_temp": ["acclimation", "acclimation_temperature", "larval_temp", "rearing_temp"],
    "exposure_temp": ["exposure", "exposure_temperature", "adult_temp", "treatment_temp"],
    "emergence_date": ["emergence", "eclosion_date", "emerge_date"],
    "emergence_time": ["emergence_ampm", "emergence_am_pm", "emerge_time", "eclosion_time"],
    "death_date": ["death", "date_of_death"],
    "death_time": ["death_ampm", "death_am_pm"],
}


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Lower-case and snake_case column names."""
    out = df.copy()
    out.columns = (
        out.columns.astype(str)
        .str.strip()
        .str.lower()
        .str.replace(" ", "_", regex=False)
        .str.replace("-", "_", regex=False)
        .str.replace(".", "_", regex=False)
    )
    return out


def rename_aliases(df: pd.DataFrame) -> pd.DataFrame:
    """Map known column aliases onto canonical names (canonical names win)."""
    mapping = {}
    for canonical, aliases in COLUMN_ALIASES.items():
        if canonical in df.columns:
            continue
        for alias in aliases:
            if alias in df.columns:
                mapping[alias] = canonical
                break
    return df.rename(columns=mapping)


def parse_time_of_day(x) -> Union[float, str]:
    """
    Normalize a half-day flag to "AM" or "PM".
    Accepts numeric encodings (0 = morning, 1 = afternoon) and common string variants.
    """
    if pd.isna(x):
        return np.nan

    # Numeric-like
    try:
        xi = int(float(x))
        if xi == 0:
            return "AM"
        if xi == 1:
            return "PM"
        return np.nan
    except (TypeError, ValueError):
        pass

    s = str(x).strip().lower().replace(".", "")
    if s in {"am", "a", "morning", "morn"}:
        return "AM"
    if s in {"pm", "p", "afternoon", "evening", "aft"}:
        return "PM"

    return np.nan


def parse_sex(x) -> Union[float, str]:
    """Normalize sex codes to "F" / "M"."""
    if pd.isna(x):
        return np.nan
    s = str(x).strip().lower()
    if s in {"f", "female", "fem", "♀"}:
        return "F"
    if s in {"m", "male", "♂"}:
        return "M"
    return np.nan
