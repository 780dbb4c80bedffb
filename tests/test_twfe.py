import warnings

import numpy as np
import pytest

from fixed_effects import RankDeficiencyWarning
from fixed_effects import ols as m_ols
from fixed_effects import twfe as m_twfe

pytestmark = pytest.mark.filterwarnings(
    "ignore::fixed_effects.ols.RankDeficiencyWarning"
)


def test_add_treatment_threshold(panel):
    df = m_twfe.add_treatment(panel, 1982)
    assert set(df["treated"].unique()) == {0.0, 1.0}
    assert (df.loc[df["year"] >= 1982, "treated"] == 1).all()
    assert (df.loc[df["year"] < 1982, "treated"] == 0).all()
    assert "treated" not in panel.columns


def test_add_treatment_for_some_units(panel):
    df = m_twfe.add_treatment(panel, 1982, treated_units=["Mexico"])
    assert (df.loc[df["country"] == "Canada", "treated"] == 0).all()
    mex = df[df["country"] == "Mexico"]
    assert (mex["treated"] == (mex["year"] >= 1982)).all()


def test_common_treatment_is_rank_deficient_and_order_dependent(panel):
    df = m_twfe.add_treatment(panel, 1982)
    cmp = m_twfe.term_order_comparison(df, "life_exp", "treated")
    last_year = df["year"].max()

    assert cmp["rank_deficient"]
    assert cmp["dropped_first"] == [f"C(year)[T.{last_year}]"]
    assert cmp["dropped_last"] == ["treated"]
    assert cmp["first"]["coef"].isna().sum() == 1
    assert cmp["last"]["coef"].isna().sum() == 1
    assert np.isnan(cmp["tau_last"])
    assert not np.isnan(cmp["tau_first"])
    assert cmp["order_dependent"]


def test_treatment_first_absorbs_last_year_effect(panel):
    df = m_twfe.add_treatment(panel, 1982)
    cmp = m_twfe.term_order_comparison(df, "life_exp", "treated")
    no_treat = m_ols.estimate(df, "life_exp", ["C(country)", "C(year)"])
    last_year = df["year"].max()
    assert cmp["tau_first"] == pytest.approx(
        no_treat["coef"][f"C(year)[T.{last_year}]"], rel=1e-8)
    # Treatment last reproduces the model without treatment
    for name, value in no_treat["coef"].items():
        assert cmp["last"]["coef"][name] == pytest.approx(value, rel=1e-8, abs=1e-10)


def test_both_orders_give_same_fit(panel):
    df = m_twfe.add_treatment(panel, 1982)
    cmp = m_twfe.term_order_comparison(df, "life_exp", "treated")
    np.testing.assert_allclose(cmp["first"]["fitted"], cmp["last"]["fitted"])
    assert cmp["first"]["r2"] == pytest.approx(cmp["last"]["r2"])


def test_rank_deficiency_is_not_silent(panel):
    df = m_twfe.add_treatment(panel, 1982)
    with pytest.warns(RankDeficiencyWarning):
        m_twfe.estimate_twfe(df, "life_exp", "treated")


def test_single_treated_unit_is_identified(panel):
    df = m_twfe.add_treatment(panel, 1982, treated_units=["Canada"])
    with warnings.catch_warnings():
        warnings.simplefilter("error", RankDeficiencyWarning)
        cmp = m_twfe.term_order_comparison(df, "life_exp", "treated")
    assert not cmp["rank_deficient"]
    assert not cmp["order_dependent"]
    assert cmp["tau_first"] == pytest.approx(cmp["tau_last"])


def test_treatment_from_first_year_duplicates_intercept(panel):
    df = m_twfe.add_treatment(panel, panel["year"].min())
    res = m_twfe.estimate_twfe(df, "life_exp", "treated")
    assert res["dropped"] == ["treated"]
    assert np.isnan(res["treatment_coef"])


def test_explanation_names_dropped_year_for_common_treatment(panel):
    df = m_twfe.add_treatment(panel, 1982)
    cmp = m_twfe.term_order_comparison(df, "life_exp", "treated")
    text = m_twfe.explain_term_order(cmp)
    assert f"C(year)[T.{df['year'].max()}]" in text
    assert "treatment is the dropped column" in text


@pytest.mark.parametrize("offset", [0, 10])
def test_explanation_for_constant_treatment(panel, offset):
    # first year: treated everywhere; past the last year: treated nowhere
    year = panel["year"].min() if offset == 0 else panel["year"].max() + offset
    df = m_twfe.add_treatment(panel, year)
    cmp = m_twfe.term_order_comparison(df, "life_exp", "treated")
    assert cmp["dropped_first"] == ["treated"]
    assert cmp["dropped_last"] == ["treated"]
    text = m_twfe.explain_term_order(cmp)
    assert "dropped in both orders" in text
    assert "relative to the first" not in text


def test_explanation_for_full_rank_design(panel):
    df = m_twfe.add_treatment(panel, 1982, treated_units=["Mexico"])
    cmp = m_twfe.term_order_comparison(df, "life_exp", "treated")
    text = m_twfe.explain_term_order(cmp)
    assert "Neither order drops a column" in text
