import os

import pytest
from matplotlib.figure import Figure

from fixed_effects import ols as m_ols
from fixed_effects import panel_fe as m_fe
from fixed_effects import plots as m_plot
from fixed_effects import twfe as m_twfe


def _saved(fig, tmp_path, name):
    assert isinstance(fig, Figure)
    assert len(fig.axes) == 3
    path = m_plot.savefig(fig, str(tmp_path), name)
    assert os.path.getsize(path) > 0


def test_data_overview(panel, tmp_path):
    _saved(m_plot.plot_data_overview(panel), tmp_path, "a.png")


def test_pooled_vs_fe(panel, tmp_path):
    pooled = m_ols.estimate(panel, "life_exp", ["log_gdp"])
    lsdv = m_fe.estimate_lsdv(panel, "life_exp", "log_gdp", "country")
    _saved(m_plot.plot_pooled_vs_fe(panel, pooled, lsdv), tmp_path, "b.png")


def test_within(panel, tmp_path):
    dm = m_fe.within_demean(panel, "country", ["log_gdp", "life_exp"])
    means = m_fe.group_means(panel, "country", ["log_gdp", "life_exp"])
    cmp = m_fe.compare_within_and_dummies(panel, "life_exp", "log_gdp", "country")
    _saved(m_plot.plot_within(dm, means, cmp), tmp_path, "c.png")


@pytest.mark.filterwarnings("ignore::fixed_effects.ols.RankDeficiencyWarning")
def test_twfe_collinearity(panel, tmp_path):
    df = m_twfe.add_treatment(panel, 1982)
    cmp = m_twfe.term_order_comparison(df, "life_exp", "treated")
    _saved(m_plot.plot_twfe_collinearity(df, cmp, 1982), tmp_path, "d.png")
