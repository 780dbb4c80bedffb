"""
Fixed Effects, Explained with Two Countries
===========================================

A narrated walkthrough of country and year fixed effects, using life
expectancy and GDP per capita from the Gapminder table and the estimators
in the fixed_effects package.

  1. The data -- a two-country panel, GDP per capita in logs
  2. Pooled OLS vs country fixed effects
  3. The within transformation (demeaning) and why it equals dummies
  4. Two-way fixed effects and the collinearity trap

Falls back to simulated data if the Gapminder table is unavailable.
Writes PNG figures, CSV tables and a PDF to --outdir.
"""

import argparse
import os
import sys
import warnings
from pathlib import Path

import numpy as np

# Add project root to path so the fixed_effects package is importable
# from a plain checkout
THIS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = THIS_DIR.parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from fixed_effects import RankDeficiencyWarning
from fixed_effects import data as m_data
from fixed_effects import ols as m_ols
from fixed_effects import panel_fe as m_fe
from fixed_effects import twfe as m_twfe
from fixed_effects import tables as m_tab
from fixed_effects import plots as m_plot
from fixed_effects import report as m_report

TREATMENT_YEAR = 1982


def fit_quietly(fn, *args, **kwargs):
    """Run a fit, returning (result, [rank-deficiency messages])."""
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", RankDeficiencyWarning)
        res = fn(*args, **kwargs)
    msgs = []
    for w in caught:
        if issubclass(w.category, RankDeficiencyWarning):
            msgs.append(str(w.message))
        else:
            warnings.showwarning(w.message, w.category, w.filename, w.lineno)
    return res, msgs


def section_data(df, source, countries, outdir):
    a, b = countries
    means = m_tab.means_table(df, "country", ["life_exp", "gdp_percap", "log_gdp"])
    text = f"""\
Section 1: The Data -- Two Countries, Many Years

The question
Richer countries live longer. Across the world, life expectancy rises
steeply with GDP per capita. But is that a statement about *countries*
(rich countries differ from poor ones in a thousand ways) or about
*growth* (when a given country gets richer, do its people live longer)?
Fixed effects are the tool for separating the two.

The panel
We keep two countries, {a} and {b}, observed every five years. Each row
is a country-year: life expectancy, GDP per capita, and population
(unused). GDP enters in logs, so a slope reads as "years of life per
100% increase in income" (divide by 100 for a 1% increase) and the
long right tail of income is pulled in.

  source   : {source}
  rows     : {len(df)}  ({df['country'].nunique()} countries x {df['year'].nunique()} years)
  years    : {df['year'].min()}-{df['year'].max()}

Country means
{m_tab.format_table(means)}

Panel A of the figure shows the levels, panel B the same points against
log GDP, and panel C each country's life expectancy over time. Both
countries grow richer and live longer, but they do so at different
levels -- that level gap is what a country fixed effect absorbs.
"""
    print(text)
    fig = m_plot.plot_data_overview(df)
    path = m_plot.savefig(fig, outdir, "fig01_data.png")
    means.to_csv(os.path.join(outdir, "table01_country_means.csv"))
    return text, path


def section_pooled_vs_fe(df, outdir):
    pooled = m_ols.estimate(df, "life_exp", ["log_gdp"])
    lsdv = m_fe.estimate_lsdv(df, "life_exp", "log_gdp", "country")
    fe = m_fe.estimate_fe(df, "life_exp", "log_gdp", "country")
    table = m_tab.regression_table({"Pooled OLS": pooled, "Country FE": lsdv})

    print(f"\n[OLS] beta_hat(log GDP) = {pooled['coef']['log_gdp']:.3f}  "
          f"R2 = {pooled['r2']:.3f}")
    print(f"[FE]  beta_hat(log GDP) = {fe['beta_fe']:.3f}  "
          f"SE = {fe['se_homosk']:.4f}  R2 within = {fe['r2_within']:.3f}")

    text = f"""\
Section 2: Pooled OLS vs Country Fixed Effects

Pooled OLS
Ignore that rows belong to countries and fit
  life_exp_it = beta_0 + beta_1 * log_gdp_it + e_it
The slope mixes two comparisons: between countries (the richer one
vs the poorer one) and within countries (the same country in a richer
year vs a poorer one). If the countries differ in anything else that
matters for health -- diet, health systems, geography -- the between
comparison is contaminated by it.

Adding a country fixed effect
  life_exp_it = alpha_i + beta_1 * log_gdp_it + e_it
alpha_i is a separate intercept per country: everything about a country
that does not change over time. In a regression it is one indicator
(dummy) per country, leaving out a reference country when there is a
common intercept. With alpha_i in the model, beta_1 can only be
identified from variation *within* each country over time.

Results
{m_tab.format_table(table)}
  Standard errors in parentheses; * p<0.1, ** p<0.05, *** p<0.01.

  Pooled slope          : {pooled['coef']['log_gdp']:.3f}
  Country FE slope      : {lsdv['coef']['log_gdp']:.3f}
  Clustered SE (FE)     : {fe['se_cluster']:.4f}  ({fe['n_groups']} clusters)

The two slopes answer different questions. Panel B of the figure draws
the fixed-effects fit: one line per country, all with the same slope,
shifted by alpha_i. With only {fe['n_groups']} clusters the clustered SE is
not to be trusted; it is shown for completeness.
"""
    print(text)
    fig = m_plot.plot_pooled_vs_fe(df, pooled, lsdv)
    path = m_plot.savefig(fig, outdir, "fig02_pooled_vs_fe.png")
    table.to_csv(os.path.join(outdir, "table02_pooled_vs_fe.csv"))
    return text, path


def section_within(df, outdir):
    means = m_fe.group_means(df, "country", ["log_gdp", "life_exp"])
    dm = m_fe.within_demean(df, "country", ["log_gdp", "life_exp"])
    sums = dm.groupby("country", observed=True)[["log_gdp_within", "life_exp_within"]].sum()
    sums_text = sums.to_string(float_format=lambda v: f"{v: .2e}")
    comparison = m_fe.compare_within_and_dummies(df, "life_exp", "log_gdp", "country")
    table = m_tab.regression_table(
        {"Within": comparison["within"], "Dummies": comparison["lsdv"]},
        digits=4, collapse_fe=True,
    )

    print(f"\n[Within] beta_hat = {comparison['beta_within']:.8f}")
    print(f"[LSDV]   beta_hat = {comparison['beta_lsdv']:.8f}")
    print(f"  Match = {comparison['match']}")

    text = f"""\
Section 3: The Within Transformation

Demeaning
Subtract each country's own mean from every one of its rows:
  y_ddot_it = life_exp_it - mean_t(life_exp_i)
  x_ddot_it = log_gdp_it  - mean_t(log_gdp_i)
Any alpha_i is constant within country, so it equals its own mean and
is subtracted away. Regressing y_ddot on x_ddot gives the "within"
estimator.

Why it equals the dummy regression
By Frisch-Waugh-Lovell, the coefficient on log_gdp in a regression
that includes country dummies equals the coefficient from regressing
the part of life_exp not explained by the dummies on the part of
log_gdp not explained by the dummies. The part explained by a set of
country dummies is exactly the country mean, so those residuals are
exactly the demeaned variables.

Check: demeaned values sum to zero within each country
{sums_text}

Results
{m_tab.format_table(table)}

  Within slope  : {comparison['beta_within']:.10f}
  Dummy slope   : {comparison['beta_lsdv']:.10f}
  -> Identical: {comparison['match']}

The slopes agree but the R2 values do not: the dummy regression is
credited with the between-country variation the dummies explain, the
within regression only with variation inside countries. Standard errors
from the naive demeaned regression are also slightly too small, because
it does not charge a degree of freedom for each country mean.
"""
    print(text)
    fig = m_plot.plot_within(dm, means, comparison)
    path = m_plot.savefig(fig, outdir, "fig03_within.png")
    table.to_csv(os.path.join(outdir, "table03_within_vs_dummies.csv"))
    return text, path


def section_twfe(df, treatment_year, outdir):
    tdf = m_twfe.add_treatment(df, treatment_year)
    comparison, msgs = fit_quietly(
        m_twfe.term_order_comparison, tdf, "life_exp", "treated"
    )
    one_unit = m_twfe.add_treatment(df, treatment_year,
                                    treated_units=[df["country"].cat.categories[0]])
    identified, _ = fit_quietly(
        m_twfe.estimate_twfe, one_unit, "life_exp", "treated"
    )
    table = m_tab.regression_table(
        {"Treatment first": comparison["first"],
         "Treatment last": comparison["last"]},
        digits=2,
    )
    for m in msgs:
        print(f"[TWFE] warning: {m}")

    def fmt(v):
        return "NA" if np.isnan(v) else f"{v:.3f}"

    reading = m_twfe.explain_term_order(comparison, "treated")
    only = one_unit["country"].cat.categories[0]
    if identified["dropped"]:
        remedy = (f"Treating only {only} from {treatment_year} does not help here: the\n"
                  f"model still drops {', '.join(identified['dropped'])}, because the\n"
                  "treatment never varies within that country over the sample.")
    else:
        remedy = (f"Treating only {only} from {treatment_year}, the same TWFE model is full rank\n"
                  f"(dropped: none) and tau_hat = {fmt(identified['treatment_coef'])}.")

    text = f"""\
Section 4: Two-Way Fixed Effects and the Collinearity Trap

Adding year fixed effects
  life_exp_it = alpha_i + gamma_t + tau * D_it + e_it
gamma_t is one indicator per year: anything that hits both countries in
the same year (global medical advances, a world recession). This is the
"two-way fixed effects" (TWFE) regression behind most policy studies.

A synthetic treatment
Let D_it = 1 for every row from {treatment_year} on, in *both* countries.
Then D_it is exactly the sum of the year indicators for {treatment_year}
and later: the design matrix has a column that is a linear combination
of others. Its rank is one short and the coefficients are not all
identified.

What least squares does about it
No error is raised. The solver scans columns in order and drops the one
that completes the linear dependence, reporting it as NA:

  treatment first : dropped {', '.join(comparison['dropped_first']) or '(none)'}
                    tau_hat = {fmt(comparison['tau_first'])}
  treatment last  : dropped {', '.join(comparison['dropped_last']) or '(none)'}
                    tau_hat = {fmt(comparison['tau_last'])}

Results
{m_tab.format_table(table)}

{reading}

The fix is a research design, not a solver setting: the treatment needs
variation that the fixed effects do not absorb.
{remedy}
"""
    print(text)
    fig = m_plot.plot_twfe_collinearity(tdf, comparison, treatment_year)
    path = m_plot.savefig(fig, outdir, "fig04_twfe_collinearity.png")
    table.to_csv(os.path.join(outdir, "table04_twfe_term_order.csv"))
    return text, path


SUMMARY = """\
What fixed effects do
  - A fixed effect is a set of indicators, one per group (or period),
    that absorbs every difference in group (or period) means.
  - What remains to identify the slope is within-group variation.
    Country FE: "when this country got richer, did it live longer?"

Mechanics
  - Demeaning within groups and including group dummies give the same
    slope (Frisch-Waugh-Lovell). Demeaned columns sum to zero by group.
  - Degrees of freedom and R2 differ between the two; report the one
    you computed, and say which.

Failure mode
  - A regressor that is constant within groups, or a treatment that
    turns on for everyone at once, is collinear with the fixed effects.
  - Least squares will not stop you. It drops a column and reports NA,
    and which column depends on term order. Read the NA lines.
"""


def main():
    parser = argparse.ArgumentParser(
        description="Fixed effects walkthrough -- life expectancy and GDP"
    )
    parser.add_argument(
        "--source", choices=["auto", "gapminder", "simulate"], default="auto",
        help="Data source: 'gapminder' for the Gapminder table, 'simulate' "
             "for synthetic data, 'auto' to try Gapminder then fall back "
             "to simulation (default: auto)"
    )
    parser.add_argument(
        "--countries", nargs=2, default=list(m_data.DEFAULT_COUNTRIES),
        metavar=("A", "B"), help="The two countries to compare"
    )
    parser.add_argument(
        "--treatment-year", type=int, default=TREATMENT_YEAR,
        help="First year of the synthetic treatment (default: %(default)s)"
    )
    parser.add_argument(
        "--outdir", default=str(THIS_DIR / "output"),
        help="Directory for figures, tables and the PDF"
    )
    parser.add_argument("--no-pdf", action="store_true",
                        help="Skip assembling the PDF")
    args = parser.parse_args()

    print("=" * 60)
    print("Fixed Effects, Explained with Two Countries")
    print("=" * 60)

    outdir = m_report.output_dir(args.outdir)
    full, source = m_data.load_panel(args.source, countries=args.countries)
    df = m_data.add_log_gdp(m_data.select_countries(full, args.countries))
    print(f"\n[Data] N={len(df)}  countries={', '.join(args.countries)}  "
          f"source={source}")

    section_contents = [
        section_data(df, source, args.countries, outdir),
        section_pooled_vs_fe(df, outdir),
        section_within(df, outdir),
        section_twfe(df, args.treatment_year, outdir),
    ]
    print(SUMMARY)

    if args.no_pdf:
        print("Done!")
        return

    print("Combining into PDF with interleaved text and figures...")
    pdf_path = m_report.build_pdf(
        os.path.join(outdir, "fixed_effects_walkthrough.pdf"),
        "FIXED EFFECTS, EXPLAINED WITH TWO COUNTRIES",
        f"Life expectancy and GDP per capita: {' and '.join(args.countries)}",
        [
            "Each section states the model, fits it, and shows the numbers.",
            "",
            f"Data: {source}.",
            "",
            "Sections: the data, pooled OLS vs country FE, the within",
            "transformation, two-way FE and the collinearity trap.",
        ],
        section_contents,
        SUMMARY,
    )
    print(f"Done! {len(section_contents)} PNGs + {pdf_path}")


if __name__ == "__main__":
    main()
