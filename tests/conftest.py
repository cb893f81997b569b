"""
Shared fixtures: one synthetic experiment, fitted once per session.
"""

import matplotlib

matplotlib.use("Agg")

import pandas as pd
import pytest

from moth_survival import models, survival_analysis, synthetic


def moth_row(id_, emergence, emergence_time, death, death_time, sex="F", acc=25, exp=30, mass=0.3):
    return {
        "ID": id_,
        "Pupal mass": mass,
        "Sex": sex,
        "Acclimation temp": acc,
        "Exposure temp": exp,
        "Emergence date": emergence,
        "Emergence time": emergence_time,
        "Death date": death,
        "Death time": death_time,
        "Notes": "",
    }


@pytest.fixture
def make_records():
    """Build prepared records from (id, emergence, time, death, time, ...) rows."""

    def _make(*rows):
        return survival_analysis.prepare_records(pd.DataFrame([moth_row(*r) for r in rows]))

    return _make


@pytest.fixture(scope="session")
def raw_moths():
    return synthetic.generate_synthetic_moths(n_per_cell=8, seed=42)


@pytest.fixture(scope="session")
def moth_csv(tmp_path_factory, raw_moths):
    path = tmp_path_factory.mktemp("data") / "moths.csv"
    raw_moths.to_csv(path, index=False)
    return path


@pytest.fixture(scope="session")
def records(moth_csv):
    return survival_analysis.load_records(moth_csv)


@pytest.fixture(scope="session")
def survival(records):
    return survival_analysis.add_survival_durations(records)


@pytest.fixture(scope="session")
def intervals(survival):
    return survival_analysis.build_intervals(survival)


@pytest.fixture(scope="session")
def fitted(intervals):
    return models.fit_candidates(intervals)


@pytest.fixture(scope="session")
def best_fit(fitted):
    fits, _ = fitted
    return models.select_best_model(fits)
