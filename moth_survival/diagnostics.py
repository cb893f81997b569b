"""
Assumption checks for the selected hazards model.

- martingale residuals per individual, to inspect the functional form of
  the temperature covariates;
- scaled Schoenfeld residual test of proportional hazards (lifelines).
"""

from __future__ import annotations

import logging
import warnings

import numpy as np
import pandas as pd
from lifelines import CoxPHFitter
from lifelines.exceptions import ConvergenceError, ConvergenceWarning
from lifelines.statistics import proportional_hazard_test

from .exceptions import ModelFitError
from .models import ModelFit, design_matrix
from .survival_analysis import ZERO_DURATION_OFFSET

logger = logging.getLogger(__name__)


def breslow_cumulative_hazard(
    risk: np.ndarray,
    start: np.ndarray,
    stop: np.ndarray,
    event: np.ndarray,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Breslow baseline cumulative hazard for counting-process data.

    Returns (event_times, cumulative hazard at each event time). A row is at
    risk at time t when start < t <= stop.
    """
    event_times = np.unique(stop[event == 1])
    increments = np.empty(len(event_times), dtype=float)
    for j, t in enumerate(event_times):
        at_risk = (start < t) & (stop >= t)
        deaths = event[stop == t].sum()
        increments[j] = deaths / risk[at_risk].sum()
    return event_times, np.cumsum(increments)


def martingale_residuals(fit: ModelFit, intervals: pd.DataFrame) -> pd.DataFrame:
    """
    Martingale residuals (observed minus expected deaths) per individual.

    Expected deaths come from the fitted coefficients and the Breslow
    baseline hazard. Residuals sum to zero over the sample; plotted against
    a covariate, a non-linear trend suggests a mis-specified functional form.

    Returns
    -------
    pd.DataFrame
        Columns: id, duration, event, expected, martingale, plus the
        untransformed covariates carried on the interval table
    """
    X = design_matrix(intervals, fit.candidate.terms)
    beta = fit.fitter.params_.reindex(X.columns).to_numpy(dtype=float)
    risk = np.exp(X.to_numpy(dtype=float) @ beta)

    start = intervals["start"].to_numpy(dtype=float)
    stop = intervals["stop"].to_numpy(dtype=float)
    event = intervals["event"].to_numpy(dtype=int)

    event_times, cumhaz = breslow_cumulative_hazard(risk, start, stop, event)
    H = np.concatenate([[0.0], cumhaz])
    H_stop = H[np.searchsorted(event_times, stop, side="right")]
    H_start = H[np.searchsorted(event_times, start, side="right")]

    per_row = pd.DataFrame(
        {
            "id": intervals["id"].values,
            "stop": stop,
            "event": event,
            "expected": risk * (H_stop - H_start),
        }
    )
    out = (
        per_row.groupby("id", sort=True)
        .agg(duration=("stop", "max"), event=("event", "sum"), expected=("expected", "sum"))
        .reset_index()
    )
    out["martingale"] = out["event"] - out["expected"]

    carried = [c for c in ("sex", "acclimation_temp", "exposure_temp") if c in intervals.columns]
    if carried:
        firsts = intervals.groupby("id", sort=True)[carried].first().reset_index()
        out = out.merge(firsts, on="id", how="left")
    return out


def proportional_hazards_test(
    survival_df: pd.DataFrame,
    terms: tuple[str, ...] | list[str],
    time_transform: str = "rank",
    alpha: float = 0.05,
) -> pd.DataFrame:
    """
    Test for time-varying coefficients with scaled Schoenfeld residuals.

    The same terms are refit with CoxPHFitter on one row per individual
    (no time-varying covariates, so the estimates match the interval fit).

    Parameters
    ----------
    survival_df : pd.DataFrame
        One row per individual with duration, event and treatment columns
    terms : sequence of str
        Model terms, e.g. the selected candidate's terms
    time_transform : str
        lifelines time transform: "rank", "km", "identity" or "log"
    alpha : float
        Significance level for the `violated` flag

    Returns
    -------
    pd.DataFrame
        Columns: covariate, test_statistic, p, violated
    """
    X = design_matrix(survival_df, terms)
    data = pd.concat([survival_df[["duration", "event"]], X], axis=1)
    data["duration"] = data["duration"].clip(lower=ZERO_DURATION_OFFSET)

    cph = CoxPHFitter()
    with warnings.catch_warnings():
        warnings.simplefilter("error", ConvergenceWarning)
        try:
            cph.fit(data, duration_col="duration", event_col="event", show_progress=False)
        except (ConvergenceError, ConvergenceWarning) as e:
            raise ModelFitError("proportional hazards test", str(e)) from e

    result = proportional_hazard_test(cph, data, time_transform=time_transform)
    summary = result.summary
    out = pd.DataFrame(
        {
            "covariate": [str(i) for i in summary.index],
            "test_statistic": summary["test_statistic"].astype(float).values,
            "p": summary["p"].astype(float).values,
        }
    )
    out["time_transform"] = time_transform
    out["violated"] = out["p"] < alpha

    flagged = out.loc[out["violated"], "covariate"].tolist()
    if flagged:
        logger.warning("Proportional hazards assumption questionable for: %s", ", ".join(flagged))
    return out
