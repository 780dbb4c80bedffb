import numpy as np
import pandas as pd
import pytest
import statsmodels.formula.api as smf

from fixed_effects import RankDeficiencyWarning
from fixed_effects import ols as m_ols


@pytest.mark.parametrize("terms, formula", [
    (["log_gdp"], "life_exp ~ log_gdp"),
    (["log_gdp", "C(country)"], "life_exp ~ log_gdp + C(country)"),
])
def test_matches_statsmodels_on_full_rank_designs(panel, terms, formula):
    res = m_ols.estimate(panel, "life_exp", terms)
    ref = smf.ols(formula, data=panel).fit()
    for name, value in ref.params.items():
        assert res["coef"][name] == pytest.approx(value, rel=1e-8)
        assert res["se"][name] == pytest.approx(ref.bse[name], rel=1e-6)
        assert res["pvalue"][name] == pytest.approx(ref.pvalues[name], rel=1e-5, abs=1e-12)
    assert res["r2"] == pytest.approx(ref.rsquared)
    assert res["adj_r2"] == pytest.approx(ref.rsquared_adj)
    assert res["nobs"] == int(ref.nobs)
    assert res["dropped"] == []


def test_fitted_plus_residuals_is_outcome(panel):
    res = m_ols.estimate(panel, "life_exp", ["log_gdp"])
    np.testing.assert_allclose(res["fitted"] + res["residuals"], panel["life_exp"])


def test_rank_deficiency_warns_and_reports_na(panel):
    df = panel.assign(log_gdp_copy=panel["log_gdp"] * 2)
    with pytest.warns(RankDeficiencyWarning, match="log_gdp_copy"):
        res = m_ols.estimate(df, "life_exp", ["log_gdp", "log_gdp_copy"])
    assert res["dropped"] == ["log_gdp_copy"]
    assert np.isnan(res["coef"]["log_gdp_copy"])
    assert res["rank"] == 2
    full = m_ols.estimate(panel, "life_exp", ["log_gdp"])
    assert res["coef"]["log_gdp"] == pytest.approx(full["coef"]["log_gdp"])
    assert res["r2"] == pytest.approx(full["r2"])


def test_missing_values_raise(panel):
    df = panel.copy()
    df.loc[0, "life_exp"] = np.nan
    with pytest.raises(ValueError):
        m_ols.estimate(df, "life_exp", ["log_gdp"])


def test_uncentered_r2_without_intercept():
    df = pd.DataFrame({"x": [1.0, 2.0, 3.0, 4.0], "y": [2.1, 3.9, 6.2, 7.8]})
    res = m_ols.estimate(df, "y", ["x"], intercept=False)
    e = res["residuals"].to_numpy()
    assert res["r2"] == pytest.approx(1 - (e @ e) / (df["y"] ** 2).sum())
