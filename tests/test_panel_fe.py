import numpy as np
import pytest

from fixed_effects import panel_fe as m_fe


def test_demeaned_columns_sum_to_zero_by_group(panel3):
    dm = m_fe.within_demean(panel3, "country", ["log_gdp", "life_exp"])
    sums = dm.groupby("country", observed=True)[["log_gdp_within", "life_exp_within"]].sum()
    np.testing.assert_allclose(sums.to_numpy(), 0.0, atol=1e-9)


def test_demeaning_does_not_touch_input(panel):
    before = panel.copy()
    m_fe.within_demean(panel, "country", ["life_exp"])
    assert list(panel.columns) == list(before.columns)


def test_group_means(panel):
    means = m_fe.group_means(panel, "country", ["life_exp"])
    expected = panel.loc[panel["country"] == "Mexico", "life_exp"].mean()
    assert means.loc["Mexico", "life_exp"] == pytest.approx(expected)
    assert list(means.index) == ["Canada", "Mexico"]


@pytest.mark.parametrize("fixture", ["panel", "panel3"])
def test_within_slope_equals_dummy_slope(fixture, request):
    df = request.getfixturevalue(fixture)
    cmp = m_fe.compare_within_and_dummies(df, "life_exp", "log_gdp", "country")
    assert cmp["match"]
    assert cmp["beta_within"] == pytest.approx(cmp["beta_lsdv"], rel=1e-10)


def test_estimate_fe_agrees_with_lsdv(panel3):
    fe = m_fe.estimate_fe(panel3, "life_exp", "log_gdp", "country")
    lsdv = m_fe.estimate_lsdv(panel3, "life_exp", "log_gdp", "country")
    assert fe["beta_fe"] == pytest.approx(lsdv["coef"]["log_gdp"])
    # dof-corrected within SE is the dummy-regression SE
    assert fe["se_homosk"] == pytest.approx(lsdv["se"]["log_gdp"])
    assert fe["n_groups"] == 3
    assert fe["nobs"] == len(panel3)
    assert 0 < fe["r2_within"] <= 1
    assert np.isfinite(fe["se_cluster"])


def test_within_estimator_recovers_simulated_slope(panel3):
    fe = m_fe.estimate_fe(panel3, "life_exp", "log_gdp", "country")
    assert fe["beta_fe"] == pytest.approx(9.0, abs=3.0)


def test_lsdv_intercepts_pass_through_group_means(panel3):
    lsdv = m_fe.estimate_lsdv(panel3, "life_exp", "log_gdp", "country")
    means = m_fe.group_means(panel3, "country", ["life_exp", "log_gdp"])
    b = lsdv["coef"]["log_gdp"]
    for country, alpha in lsdv["intercepts"].items():
        assert alpha == pytest.approx(
            means.loc[country, "life_exp"] - b * means.loc[country, "log_gdp"])


def test_single_cluster_se_is_nan():
    x = np.array([-1.0, 0.0, 1.0])
    e = np.array([0.1, -0.2, 0.1])
    assert np.isnan(m_fe.clustered_se_scalar(x, e, np.array(["a", "a", "a"])))


def test_no_within_variation_raises(panel):
    df = panel.assign(const_x=panel["country"].cat.codes.astype(float))
    with pytest.raises(ValueError):
        m_fe.estimate_fe(df, "life_exp", "const_x", "country")
