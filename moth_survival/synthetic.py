"""
Synthetic moth survival data in the layout of the experiment table.

Used by the tests and for reproducing the workflow without the original
observations.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

ACCLIMATION_TEMPS = (20, 25, 30)
EXPOSURE_TEMPS = (20, 25, 30, 35)


def generate_synthetic_moths(
    n_per_cell: int = 8,
    seed: int = 42,
    acclimation_temps: tuple = ACCLIMATION_TEMPS,
    exposure_temps: tuple = EXPOSURE_TEMPS,
    start_date: str = "2023-06-01",
    n_incomplete: int = 3,
) -> pd.DataFrame:
    """
    Generate one row per moth for every acclimation x exposure x sex cell.

    Lifespan shortens with exposure temperature, lengthens slightly with
    acclimation temperature, and females outlive males. Emergence and death
    are recorded as a date plus an AM/PM flag, so durations land on half
    days. `n_incomplete` rows lose their death record (escaped moths) and
    a few pupal masses are missing.
    """
    rng = np.random.default_rng(seed)
    day0 = pd.Timestamp(start_date)

    rows = []
    next_id = 1
    for acc in acclimation_temps:
        for exp in exposure_temps:
            for sex in ("F", "M"):
                mean_days = 18.0 * np.exp(-0.07 * (exp - 20)) * np.exp(0.015 * (acc - 25))
                if sex == "F":
                    mean_days *= 1.15
                for _ in range(n_per_cell):
                    emerge_half = int(rng.integers(0, 20))
                    life_halves = int(round(2 * rng.gamma(shape=4.0, scale=mean_days / 4.0)))
                    death_half = emerge_half + life_halves
                    mass = rng.normal(0.30 if sex == "F" else 0.26, 0.03) - 0.002 * (acc - 25)
                    rows.append(
                        {
                            "ID": f"M{next_id:03d}",
                            "Pupal_mass": round(float(mass), 4),
                            "Sex": sex,
                            "Acclimation_temp": acc,
                            "Exposure_temp": exp,
                            "Emergence_date": (day0 + pd.Timedelta(days=emerge_half // 2)).date(),
                            "Emergence_time": "PM" if emerge_half % 2 else "AM",
                            "Death_date": (day0 + pd.Timedelta(days=death_half // 2)).date(),
                            "Death_time": "PM" if death_half % 2 else "AM",
                            "Notes": "",
                        }
                    )
                    next_id += 1

    df = pd.DataFrame(rows)

    if n_incomplete:
        idx = rng.choice(len(df), size=min(n_incomplete, len(df)), replace=False)
        df.loc[idx, "Death_date"] = None
        df.loc[idx, "Death_time"] = None
        df.loc[idx, "Notes"] = "escaped before death was recorded"

        no_mass = rng.choice(len(df), size=min(n_incomplete, len(df)), replace=False)
        df.loc[no_mass, "Pupal_mass"] = np.nan

    return df
