"""
Figures for the survival report.

Every function writes one file and closes its figure.
"""

from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from lifelines import KaplanMeierFitter

# cool -> hot for exposure temperatures
EXPOSURE_PALETTE = "YlOrRd"
ACCLIMATION_PALETTE = "crest"
SEX_COLORS = {"F": "#6B5B95", "M": "#E8743B"}
DPI = 300


def _temp_label(t) -> str:
    return f"{float(t):g} °C"


def _labelled(survival_df: pd.DataFrame) -> pd.DataFrame:
    df = survival_df.copy()
    df["acclimation"] = df["acclimation_temp"].map(_temp_label)
    df["exposure"] = df["exposure_temp"].map(_temp_label)
    return df


def _order(values: pd.Series) -> list[str]:
    return [_temp_label(t) for t in sorted(values.dropna().unique())]


def plot_survival_distributions(survival_df: pd.DataFrame, outpath: str | Path) -> Path:
    """Box plot by exposure x acclimation and split violin by exposure x sex."""
    outpath = Path(outpath)
    df = _labelled(survival_df)
    exp_order = _order(df["exposure_temp"])
    acc_order = _order(df["acclimation_temp"])

    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(12, 4.5), sharey=True)
    sns.boxplot(
        data=df, x="exposure", y="duration", hue="acclimation",
        order=exp_order, hue_order=acc_order, palette=ACCLIMATION_PALETTE, ax=ax1,
    )
    ax1.set_xlabel("Adult exposure temperature")
    ax1.set_ylabel("Adult survival (days)")
    ax1.legend(title="Acclimation", fontsize=9)

    sns.violinplot(
        data=df, x="exposure", y="duration", hue="sex",
        order=exp_order, hue_order=[s for s in ("F", "M") if s in set(df["sex"])],
        split=True, inner="quartile", palette=SEX_COLORS, cut=0, ax=ax2,
    )
    ax2.set_xlabel("Adult exposure temperature")
    ax2.set_ylabel("")
    ax2.legend(title="Sex", fontsize=9)

    for ax in (ax1, ax2):
        ax.grid(True, axis="y", alpha=0.25)
    plt.tight_layout()
    outpath.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(outpath, dpi=DPI, bbox_inches="tight")
    plt.close(fig)
    return outpath


def plot_kaplan_meier(survival_df: pd.DataFrame, outpath: str | Path) -> Path:
    """Kaplan-Meier curves per exposure temperature, one panel per acclimation."""
    outpath = Path(outpath)
    acc_levels = sorted(survival_df["acclimation_temp"].dropna().unique())
    exp_levels = sorted(survival_df["exposure_temp"].dropna().unique())
    colors = sns.color_palette(EXPOSURE_PALETTE, n_colors=len(exp_levels) + 1)[1:]

    fig, axes = plt.subplots(
        1, len(acc_levels), figsize=(4.2 * len(acc_levels), 4), sharey=True, squeeze=False
    )
    for ax, acc in zip(axes[0], acc_levels):
        sub = survival_df[survival_df["acclimation_temp"] == acc]
        for color, exp in zip(colors, exp_levels):
            grp = sub[sub["exposure_temp"] == exp]
            if grp.empty:
                continue
            kmf = KaplanMeierFitter()
            kmf.fit(grp["duration"], event_observed=grp["event"], label=_temp_label(exp))
            kmf.plot_survival_function(ax=ax, ci_show=False, color=color, linewidth=2)
        ax.set_title(f"Acclimation {_temp_label(acc)}", fontsize=11)
        ax.set_xlabel("Days since emergence")
        ax.grid(True, alpha=0.25)
    axes[0][0].set_ylabel("Proportion alive")
    axes[0][-1].legend(title="Exposure", fontsize=9)

    plt.tight_layout()
    outpath.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(outpath, dpi=DPI, bbox_inches="tight")
    plt.close(fig)
    return outpath


def plot_martingale_residuals(
    residuals: pd.DataFrame,
    outpath: str | Path,
    covariates: list[str] | None = None,
) -> Path:
    """Martingale residuals against each numeric covariate with a lowess trend."""
    outpath = Path(outpath)
    if covariates is None:
        covariates = [
            c for c in ("acclimation_temp", "exposure_temp", "pupal_mass")
            if c in residuals.columns and residuals[c].notna().sum() > 2
        ]

    fig, axes = plt.subplots(
        1, max(len(covariates), 1), figsize=(4.2 * max(len(covariates), 1), 3.8),
        sharey=True, squeeze=False,
    )
    for ax, cov in zip(axes[0], covariates):
        d = residuals[[cov, "martingale"]].dropna()
        jitter = 0.0 if d[cov].nunique() > 10 else 0.15 * np.ptp(d[cov].to_numpy()) / max(d[cov].nunique(), 1)
        sns.regplot(
            data=d, x=cov, y="martingale", lowess=True, x_jitter=jitter,
            scatter_kws={"s": 12, "alpha": 0.5}, line_kws={"color": "k", "lw": 2}, ax=ax,
        )
        ax.axhline(0.0, ls="--", lw=1, color="grey")
        ax.set_xlabel(cov.replace("_", " "))
        ax.grid(True, alpha=0.25)
    axes[0][0].set_ylabel("Martingale residual")

    plt.tight_layout()
    outpath.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(outpath, dpi=DPI, bbox_inches="tight")
    plt.close(fig)
    return outpath


def forest_plot(hazard_ratios: pd.DataFrame, outpath: str | Path, title: str = "") -> Path:
    """Hazard ratios with confidence intervals on a log axis."""
    outpath = Path(outpath)
    lo_col = next(c for c in hazard_ratios.columns if c.startswith("ci_lower"))
    hi_col = next(c for c in hazard_ratios.columns if c.startswith("ci_upper"))

    labels = hazard_ratios["covariate"].str.replace("_", " ").tolist()
    est = hazard_ratios["hazard_ratio"].to_numpy()
    lo = hazard_ratios[lo_col].to_numpy()
    hi = hazard_ratios[hi_col].to_numpy()

    fig, ax = plt.subplots(figsize=(6.2, 0.6 * len(labels) + 1.6))
    y = np.arange(len(labels))[::-1]
    ax.hlines(y, lo, hi, lw=2)
    ax.plot(est, y, "o", ms=5)
    ax.axvline(1.0, ls="--", lw=1, color="k")
    ax.set_xscale("log")
    ax.set_yticks(y)
    ax.set_yticklabels(labels, fontsize=10)
    ax.set_xlabel("Hazard ratio (exp(coef))", fontsize=11)
    if title:
        ax.set_title(title, fontsize=12)
    ax.grid(True, axis="x", alpha=0.25)
    plt.tight_layout()
    outpath.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(outpath, dpi=DPI, bbox_inches="tight")
    plt.close(fig)
    return outpath
