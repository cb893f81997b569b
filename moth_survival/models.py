"""
Cox proportional-hazards model fitting and selection.

Fits a fixed menu of nested covariate sets to the half-day start/stop
intervals with lifelines' CoxTimeVaryingFitter, ranks converged fits by
AICc and reports hazard ratios for the selected model.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass

import numpy as np
import pandas as pd
from lifelines import CoxTimeVaryingFitter
from lifelines.exceptions import ConvergenceError, ConvergenceWarning
from scipy import stats

from .exceptions import DataValidationError, ModelFitError

logger = logging.getLogger(__name__)

INTERACTION_SEP = "_x_"

SEX = "sex_male"
ACCLIMATION = "acclimation_temp"
EXPOSURE = "exposure_temp"
ACCLIMATION_X_EXPOSURE = f"{ACCLIMATION}{INTERACTION_SEP}{EXPOSURE}"
SEX_X_EXPOSURE = f"{SEX}{INTERACTION_SEP}{EXPOSURE}"

INTERVAL_COLUMNS = ["id", "start", "stop", "event"]


@dataclass(frozen=True)
class CandidateModel:
    """A named covariate set; interaction terms are written `a_x_b`."""

    name: str
    terms: tuple[str, ...]


CANDIDATE_MODELS = (
    CandidateModel("sex", (SEX,)),
    CandidateModel("sex + acclimation", (SEX, ACCLIMATION)),
    CandidateModel("sex + exposure", (SEX, EXPOSURE)),
    CandidateModel("sex + acclimation + exposure", (SEX, ACCLIMATION, EXPOSURE)),
    CandidateModel(
        "sex + acclimation * exposure",
        (SEX, ACCLIMATION, EXPOSURE, ACCLIMATION_X_EXPOSURE),
    ),
    CandidateModel(
        "sex * exposure + acclimation",
        (SEX, ACCLIMATION, EXPOSURE, SEX_X_EXPOSURE),
    ),
    CandidateModel(
        "sex * exposure + acclimation * exposure",
        (SEX, ACCLIMATION, EXPOSURE, ACCLIMATION_X_EXPOSURE, SEX_X_EXPOSURE),
    ),
)


@dataclass
class ModelFit:
    """A converged candidate model and its information criteria."""

    candidate: CandidateModel
    fitter: CoxTimeVaryingFitter
    log_likelihood: float
    n_params: int
    n_events: int
    n_subjects: int

    @property
    def name(self) -> str:
        return self.candidate.name

    @property
    def aic(self) -> float:
        return -2.0 * self.log_likelihood + 2.0 * self.n_params

    @property
    def aicc(self) -> float:
        return aicc(self.log_likelihood, self.n_params, self.n_events)


def aicc(log_likelihood: float, n_params: int, n_obs: int) -> float:
    """
    Small-sample corrected AIC (Hurvich & Tsai 1989).

    AICc = -2 logL + 2k + 2k(k+1)/(n-k-1); infinite when n <= k + 1.
    For Cox models n is the number of events.
    """
    k = n_params
    if n_obs - k - 1 <= 0:
        return np.inf
    return -2.0 * log_likelihood + 2.0 * k + 2.0 * k * (k + 1) / (n_obs - k - 1)


def main_effects(df: pd.DataFrame) -> dict[str, pd.Series]:
    """Numeric main-effect columns: male indicator and both temperatures (°C)."""
    return {
        SEX: (df["sex"] == "M").astype(float),
        ACCLIMATION: pd.to_numeric(df[ACCLIMATION], errors="coerce").astype(float),
        EXPOSURE: pd.to_numeric(df[EXPOSURE], errors="coerce").astype(float),
    }


def design_matrix(df: pd.DataFrame, terms: tuple[str, ...] | list[str]) -> pd.DataFrame:
    """Build one column per term; `a_x_b` terms are products of main effects."""
    base = main_effects(df)
    X = pd.DataFrame(index=df.index)
    for term in terms:
        parts = term.split(INTERACTION_SEP)
        unknown = [p for p in parts if p not in base]
        if unknown:
            raise ValueError(f"Unknown model term {term!r} (known: {sorted(base)})")
        col = base[parts[0]]
        for p in parts[1:]:
            col = col * base[p]
        X[term] = col
    return X


def fit_candidate(
    intervals: pd.DataFrame,
    candidate: CandidateModel,
    penalizer: float = 0.0,
) -> ModelFit:
    """
    Fit one candidate to the start/stop interval table.

    Raises ModelFitError when lifelines cannot converge, warns about
    convergence, or returns non-finite coefficients or standard errors.
    """
    missing = set(INTERVAL_COLUMNS) - set(intervals.columns)
    if missing:
        raise DataValidationError(f"Interval table missing columns: {sorted(missing)}")

    X = design_matrix(intervals, candidate.terms)
    data = pd.concat([intervals[INTERVAL_COLUMNS], X], axis=1)
    if data.isna().any().any():
        raise DataValidationError(f"[{candidate.name}] interval table has missing covariate values")

    ctv = CoxTimeVaryingFitter(penalizer=penalizer)
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        try:
            ctv.fit(
                data,
                id_col="id",
                event_col="event",
                start_col="start",
                stop_col="stop",
                show_progress=False,
            )
        except ConvergenceError as e:
            raise ModelFitError(candidate.name, f"fit did not converge: {e}") from e
        except np.linalg.LinAlgError as e:
            raise ModelFitError(candidate.name, f"singular information matrix: {e}") from e

    for w in caught:
        if issubclass(w.category, ConvergenceWarning):
            raise ModelFitError(candidate.name, f"convergence warning: {w.message}")
        warnings.warn(w.message, w.category)

    coef = ctv.summary["coef"]
    se = ctv.summary["se(coef)"]
    if not (np.isfinite(coef).all() and np.isfinite(se).all()):
        raise ModelFitError(candidate.name, "non-finite coefficient estimates (possible separation)")

    fit = ModelFit(
        candidate=candidate,
        fitter=ctv,
        log_likelihood=float(ctv.log_likelihood_),
        n_params=int(len(ctv.params_)),
        n_events=int(data["event"].sum()),
        n_subjects=int(data["id"].nunique()),
    )
    logger.info("Fitted %-42s logL=%.3f AICc=%.3f", candidate.name, fit.log_likelihood, fit.aicc)
    return fit


def fit_candidates(
    intervals: pd.DataFrame,
    candidates: tuple[CandidateModel, ...] | list[CandidateModel] = CANDIDATE_MODELS,
    penalizer: float = 0.0,
) -> tuple[list[ModelFit], pd.DataFrame]:
    """
    Fit every candidate; return (converged fits, failure table).

    Failed candidates are logged and listed with their error, never ranked.
    """
    fits, failures = [], []
    for candidate in candidates:
        try:
            fits.append(fit_candidate(intervals, candidate, penalizer=penalizer))
        except ModelFitError as e:
            logger.warning("Model %s failed: %s", candidate.name, e.message)
            failures.append(
                {"model": candidate.name, "terms": " + ".join(candidate.terms), "error": e.message}
            )
    return fits, pd.DataFrame(failures, columns=["model", "terms", "error"])


def rank_models(fits: list[ModelFit]) -> pd.DataFrame:
    """
    Rank converged fits by AICc (ties broken by model name).

    Returns a table with delta AICc and Akaike weights; the order of `fits`
    has no influence on the result.
    """
    cols = [
        "rank", "model", "terms", "n_params", "n_events",
        "log_likelihood", "AIC", "AICc", "delta_AICc", "akaike_weight",
    ]
    if not fits:
        return pd.DataFrame(columns=cols)

    table = pd.DataFrame(
        [
            {
                "model": f.name,
                "terms": " + ".join(f.candidate.terms),
                "n_params": f.n_params,
                "n_events": f.n_events,
                "log_likelihood": f.log_likelihood,
                "AIC": f.aic,
                "AICc": f.aicc,
            }
            for f in fits
        ]
    )
    table = table.sort_values(["AICc", "model"], kind="mergesort").reset_index(drop=True)

    best = table["AICc"].iloc[0]
    if np.isfinite(best):
        table["delta_AICc"] = table["AICc"] - best
        rel = np.exp(-0.5 * table["delta_AICc"])
        table["akaike_weight"] = rel / rel.sum()
    else:
        table["delta_AICc"] = np.nan
        table["akaike_weight"] = np.nan
    table["rank"] = np.arange(1, len(table) + 1)
    return table[cols]


def select_best_model(fits: list[ModelFit]) -> ModelFit:
    """Lowest AICc wins, however small the margin to the runner-up."""
    if not fits:
        raise ModelFitError("model selection", "no candidate model converged; nothing to rank")
    return min(fits, key=lambda f: (f.aicc, f.name))


def hazard_ratio_table(fit: ModelFit, alpha: float = 0.05) -> pd.DataFrame:
    """Exponentiated coefficients with Wald confidence intervals."""
    z = stats.norm.ppf(1 - alpha / 2)
    s = fit.fitter.summary
    coef = s["coef"].astype(float)
    se = s["se(coef)"].astype(float)
    level = int(round((1 - alpha) * 100))
    out = pd.DataFrame(
        {
            "model": fit.name,
            "covariate": list(s.index),
            "coef": coef.values,
            "se": se.values,
            "hazard_ratio": np.exp(coef.values),
            f"ci_lower_{level}": np.exp((coef - z * se).values),
            f"ci_upper_{level}": np.exp((coef + z * se).values),
            "z": s["z"].astype(float).values,
            "p": s["p"].astype(float).values,
        }
    )
    return out
