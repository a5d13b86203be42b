"""
Tests for bootstrap confidence intervals.
"""
import numpy as np
import pandas as pd
import pytest

from ebtools.stats.bootstrap import get_boot_ci
from ebtools.stats.effect_size import cles_boot


def mean_of(data: pd.DataFrame, ind: np.ndarray, column: str = "x") -> float:
    return float(data[column].to_numpy()[ind].mean())


@pytest.fixture
def sample(rng: np.random.Generator) -> pd.DataFrame:
    return pd.DataFrame({
        "x": rng.normal(loc=5.0, scale=2.0, size=80),
        "y": rng.normal(loc=6.0, scale=2.0, size=80),
    })


def test_percentile_interval_covers_estimate(sample: pd.DataFrame) -> None:
    out = get_boot_ci(sample, mean_of, type="perc", n_resamples=500)
    assert list(out.columns) == ["type", "conf", ".lower", ".upper"]
    assert out["type"].tolist() == ["percent"]
    row = out.iloc[0]
    est = out.attrs["estimate"]
    assert est == pytest.approx(sample["x"].mean())
    assert row[".lower"] < est < row[".upper"]
    # roughly 2 * 1.96 * sd / sqrt(n) wide
    assert 0.4 < row[".upper"] - row[".lower"] < 1.5


def test_all_types(sample: pd.DataFrame) -> None:
    out = get_boot_ci(sample, mean_of, type="all", n_resamples=300)
    assert out["type"].tolist() == ["normal", "basic", "percent", "bca"]
    assert (out["conf"] == 0.95).all()
    assert (out[".lower"] < out[".upper"]).all()


def test_seeded_runs_agree(sample: pd.DataFrame) -> None:
    first = get_boot_ci(sample, mean_of, type=["basic", "bca"], n_resamples=300)
    second = get_boot_ci(sample, mean_of, type=["basic", "bca"], n_resamples=300)
    pd.testing.assert_frame_equal(first, second)


def test_kwargs_reach_the_statistic(sample: pd.DataFrame) -> None:
    out = get_boot_ci(sample, mean_of, type="perc", n_resamples=200, column="y")
    assert out.attrs["estimate"] == pytest.approx(sample["y"].mean())


def test_with_cles_statistic(sample: pd.DataFrame) -> None:
    out = get_boot_ci(sample, cles_boot, type="perc", n_resamples=200, group_variables=["x", "y"])
    assert 0.5 <= out.attrs["estimate"] <= 1.0
    assert 0.0 <= out[".lower"].iloc[0] <= out[".upper"].iloc[0] <= 1.0


def test_values_are_rounded(sample: pd.DataFrame) -> None:
    out = get_boot_ci(sample, mean_of, type="perc", n_resamples=200)
    for col in (".lower", ".upper"):
        v = out[col].iloc[0]
        assert v == round(v, 4)


@pytest.mark.parametrize("bad", ["stud", ["perc", "wild"]])
def test_unknown_type_is_rejected(sample: pd.DataFrame, bad) -> None:
    with pytest.raises(ValueError, match="supported interval types"):
        get_boot_ci(sample, mean_of, type=bad)


def test_bad_conf(sample: pd.DataFrame) -> None:
    with pytest.raises(ValueError, match="conf"):
        get_boot_ci(sample, mean_of, conf=1.5)


def test_data_must_be_a_frame() -> None:
    with pytest.raises(TypeError):
        get_boot_ci([1.0, 2.0, 3.0], mean_of)
