"""
Descriptive statistics and ANOVA tables for the survival report.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
import statsmodels.api as sm
import statsmodels.formula.api as smf

from .exceptions import DataValidationError

TREATMENT_FACTORS = ["acclimation_temp", "exposure_temp", "sex"]


def group_summary(df: pd.DataFrame, value: str, by: list[str]) -> pd.DataFrame:
    """n / mean / sd / median / min / max of `value` per group."""
    d = df.dropna(subset=[value] + by)
    out = (
        d.groupby(by, sort=True)[value]
        .agg(n="count", mean="mean", sd="std", median="median", min="min", max="max")
        .reset_index()
    )
    return out


def survival_summary(survival_df: pd.DataFrame, by: list[str] | None = None) -> pd.DataFrame:
    """Adult lifespan (days) per acclimation x exposure x sex cell."""
    return group_summary(survival_df, "duration", by or TREATMENT_FACTORS)


def pupal_mass_summary(records: pd.DataFrame, by: list[str] | None = None) -> pd.DataFrame:
    """Pupal mass per acclimation temperature and sex (rows without mass are skipped)."""
    return group_summary(records, "pupal_mass", by or ["acclimation_temp", "sex"])


def anova_table(df: pd.DataFrame, response: str, factors: list[str]) -> pd.DataFrame:
    """
    Type-II ANOVA of `response` on the full factorial of categorical `factors`.

    Adds partial eta squared for every effect.
    """
    d = df[[response] + list(factors)].dropna().copy()
    for f in factors:
        if d[f].nunique() < 2:
            raise DataValidationError(f"ANOVA factor {f!r} needs at least two levels")

    formula = f"{response} ~ " + " * ".join(f"C({f})" for f in factors)
    fit = smf.ols(formula, data=d).fit()
    table = sm.stats.anova_lm(fit, typ=2)

    ss_resid = float(table.loc["Residual", "sum_sq"])
    eta = table["sum_sq"] / (table["sum_sq"] + ss_resid)
    table["eta_sq_partial"] = np.where(table.index == "Residual", np.nan, eta)

    table = table.reset_index().rename(columns={"index": "term", "PR(>F)": "p"})
    table["term"] = table["term"].str.replace(r"C\((\w+)\)", r"\1", regex=True)
    return table
