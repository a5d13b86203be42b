"""
Tests for spatial lags over neighbour orders.

Five regions sit on a line; each one neighbours the next, so order-2
neighbours are two steps apart and the middle region has no order-3
neighbour.
"""
import numpy as np
import pandas as pd
import pytest
from libpysal.weights import W

from ebtools.spatial import add_spatial_lags, neighbors_from_coords


@pytest.fixture
def chain() -> W:
    return W({0: [1], 1: [0, 2], 2: [1, 3], 3: [2, 4], 4: [3]})


@pytest.fixture
def regions() -> pd.DataFrame:
    return pd.DataFrame({
        "id": list("abcde"),
        "y": [1.0, 10, 100, 1000, 10000],
        "x_coord": [0.0, 1, 3, 6, 10],
        "y_coord": [0.0] * 5,
    })


def test_row_standardised_lags(chain: W, regions: pd.DataFrame) -> None:
    out = add_spatial_lags(chain, "y", regions, lags=2)
    np.testing.assert_allclose(out["spatlag_1_y"], [10, 50.5, 505, 5050, 1000])
    # exact order 2: 0-2, 1-3, 2-{0,4}, 3-1, 4-2
    np.testing.assert_allclose(out["spatlag_2_y"], [100, 1000, 5000.5, 10, 100])


def test_column_order(chain: W, regions: pd.DataFrame) -> None:
    out = add_spatial_lags(chain, "y", regions, lags=2)
    assert list(out.columns) == ["y", "spatlag_1_y", "spatlag_2_y", "id", "x_coord", "y_coord"]
    pd.testing.assert_series_equal(out["id"], regions["id"])


def test_binary_style_sums_neighbours(chain: W, regions: pd.DataFrame) -> None:
    out = add_spatial_lags(chain, "y", regions, lags=1, style="B")
    np.testing.assert_allclose(out["spatlag_1_y"], [10, 101, 1010, 10100, 1000])


def test_weight_summaries_in_attrs(chain: W, regions: pd.DataFrame) -> None:
    out = add_spatial_lags(chain, "y", regions, lags=2)
    summ = out.attrs["summ_wgts_spatlag_1"]
    assert summ["n_regions"] == 5
    assert summ["n_links"] == 8
    assert summ["n_islands"] == 0
    assert summ["style"] == "W"
    assert out.attrs["summ_wgts_spatlag_2"]["n_links"] == 6


def test_islands_need_zero_policy(chain: W, regions: pd.DataFrame) -> None:
    with pytest.raises(ValueError, match="zero_policy"):
        add_spatial_lags(chain, "y", regions, lags=3)

    out = add_spatial_lags(chain, "y", regions, lags=3, zero_policy=True)
    # order 3: 0-3, 1-4, middle region isolated
    np.testing.assert_allclose(out["spatlag_3_y"], [1000, 10000, 0, 1, 10])
    assert out.attrs["summ_wgts_spatlag_3"]["n_islands"] == 1


def test_inverse_distance_weights(chain: W, regions: pd.DataFrame) -> None:
    """Gaps along the line are 1, 2, 3 and 4; raw weights are 1/d."""
    out = add_spatial_lags(chain, "y", regions, lags=1, type="idw", coords=("x_coord", "y_coord"))
    expected = [10, 1 + 100 / 2, 10 / 2 + 1000 / 3, 100 / 3 + 10000 / 4, 1000 / 4]
    np.testing.assert_allclose(out["spatlag_1_y"], expected)
    assert out.attrs["summ_wgts_spatlag_1"]["style"] == "raw"


def test_exponential_decay_row_standardised(chain: W, regions: pd.DataFrame) -> None:
    pts = regions[["x_coord", "y_coord"]].to_numpy()
    out = add_spatial_lags(chain, "y", regions, lags=1, type="exp", coords=pts, style="W", alpha=0.5)
    w1, w2 = np.exp(-0.5 * 1), np.exp(-0.5 * 2)
    assert out["spatlag_1_y"].iloc[1] == pytest.approx((w1 * 1 + w2 * 100) / (w1 + w2))
    assert out["spatlag_1_y"].iloc[0] == pytest.approx(10)


def test_dpd_needs_dmax(chain: W, regions: pd.DataFrame) -> None:
    with pytest.raises(ValueError, match="dmax"):
        add_spatial_lags(chain, "y", regions, lags=1, type="dpd", coords=("x_coord", "y_coord"))


def test_dpd_cuts_off_beyond_dmax(chain: W, regions: pd.DataFrame) -> None:
    out = add_spatial_lags(
        chain, "y", regions, lags=1, type="dpd", dmax=2.5, alpha=1.0, coords=("x_coord", "y_coord"),
    )
    # region 3's neighbours are 3 and 4 away, both past dmax
    assert out["spatlag_1_y"].iloc[3] == pytest.approx(0.0)
    assert out["spatlag_1_y"].iloc[0] == pytest.approx(10 * (1 - 1 / 2.5))


@pytest.mark.parametrize(
    "kwargs, match",
    [
        ({"type": "gaussian"}, "type"),
        ({"style": "Z"}, "style"),
        ({"lags": 0}, "lags"),
    ],
)
def test_bad_arguments(chain: W, regions: pd.DataFrame, kwargs, match) -> None:
    args = {"lags": 1, **kwargs}
    with pytest.raises(ValueError, match=match):
        add_spatial_lags(chain, "y", regions, **args)


def test_y_must_be_a_numeric_column(chain: W, regions: pd.DataFrame) -> None:
    with pytest.raises(ValueError, match="column"):
        add_spatial_lags(chain, "z", regions, lags=1)
    with pytest.raises(ValueError, match="numeric"):
        add_spatial_lags(chain, "id", regions, lags=1)


def test_neighbour_structure_is_required(regions: pd.DataFrame) -> None:
    with pytest.raises(TypeError, match="libpysal"):
        add_spatial_lags({0: [1]}, "y", regions, lags=1)


def test_neighbours_from_coords(regions: pd.DataFrame) -> None:
    pts = regions[["x_coord", "y_coord"]].to_numpy()
    knn = neighbors_from_coords(pts, k=2)
    assert knn.n == 5
    assert all(len(v) == 2 for v in knn.neighbors.values())

    band = neighbors_from_coords(pts, threshold=2.5)
    assert sorted(band.neighbors[1]) == [0, 2]
    assert len(band.neighbors[4]) == 0


def test_neighbours_need_exactly_one_rule(regions: pd.DataFrame) -> None:
    pts = regions[["x_coord", "y_coord"]].to_numpy()
    with pytest.raises(ValueError, match="exactly one"):
        neighbors_from_coords(pts)
    with pytest.raises(ValueError, match="exactly one"):
        neighbors_from_coords(pts, k=2, threshold=1.0)
