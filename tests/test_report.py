import runpy
import sys
from pathlib import Path

import matplotlib.pyplot as plt
import pytest

from fixed_effects import report as m_report

ANALYSIS = (Path(__file__).resolve().parents[1] / "applications"
            / "gapminder_fixed_effects" / "analysis.py")


def test_escape():
    assert m_report.escape("a < b & c > d") == "a &lt; b &amp; c &gt; d"


def test_build_pdf(tmp_path):
    fig, ax = plt.subplots()
    ax.plot([0, 1], [0, 1])
    fig_path = tmp_path / "fig.png"
    fig.savefig(fig_path)
    plt.close(fig)

    sections = [
        ("Section 1: Text <with> & markup\n\n  y = a + b*x\nmore", str(fig_path)),
        ("Section 2: No figure\nbody", None),
    ]
    pdf = m_report.build_pdf(str(tmp_path / "out.pdf"), "Title", "Sub",
                             ["line", "", "line"], sections, "done\n\n  ok")
    with open(pdf, "rb") as fh:
        assert fh.read(4) == b"%PDF"


@pytest.mark.filterwarnings("ignore::fixed_effects.ols.RankDeficiencyWarning")
def test_walkthrough_end_to_end(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", [
        "analysis.py", "--source", "simulate", "--outdir", str(tmp_path),
    ])
    runpy.run_path(str(ANALYSIS), run_name="__main__")
    out = capsys.readouterr().out
    assert "Section 4: Two-Way Fixed Effects" in out
    assert "dropped treated" in out
    for name in ["fig01_data.png", "fig02_pooled_vs_fe.png", "fig03_within.png",
                 "fig04_twfe_collinearity.png", "table04_twfe_term_order.csv",
                 "fixed_effects_walkthrough.pdf"]:
        assert (tmp_path / name).exists()


@pytest.mark.filterwarnings("ignore::fixed_effects.ols.RankDeficiencyWarning")
def test_walkthrough_with_treatment_after_sample(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", [
        "analysis.py", "--source", "simulate", "--outdir", str(tmp_path),
        "--treatment-year", "2010", "--no-pdf",
    ])
    runpy.run_path(str(ANALYSIS), run_name="__main__")
    out = capsys.readouterr().out
    assert "dropped in both orders" in out
    assert "relative to the first" not in out
    assert "does not help here" in out
