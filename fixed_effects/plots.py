"""
Figures for the fixed-effects walkthrough.

Each function takes data and already-fitted results and returns a
three-panel matplotlib Figure; nothing here fits a model.
"""

import os

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
from matplotlib.lines import Line2D

# -- Style --
STYLE = {
    "figure.facecolor": "#FAFAFA", "axes.facecolor": "#FAFAFA",
    "axes.edgecolor": "#333", "axes.labelcolor": "#222",
    "xtick.color": "#555", "ytick.color": "#555", "text.color": "#222",
    "font.size": 10, "axes.titlesize": 12, "axes.titleweight": "bold",
    "axes.grid": True, "grid.alpha": 0.25, "grid.color": "#AAA", "figure.dpi": 140,
}
CB, CO, CG, CR, CP, CY = "#2171B5", "#E6550D", "#31A354", "#DE2D26", "#756BB1", "#888"
COUNTRY_COLORS = [CB, CO, CG, CP, CR]


def apply_style():
    plt.rcParams.update(STYLE)


def savefig(fig, outdir, name):
    """Save ``fig`` as ``outdir/name`` and close it. Returns the path."""
    os.makedirs(outdir, exist_ok=True)
    path = os.path.join(outdir, name)
    fig.savefig(path, bbox_inches="tight", dpi=150)
    plt.close(fig)
    return path


def _colors(df, group):
    groups = list(df[group].astype("category").cat.categories)
    return {g: COUNTRY_COLORS[i % len(COUNTRY_COLORS)] for i, g in enumerate(groups)}


def _line(ax, x, intercept, slope, **kw):
    xr = np.linspace(np.min(x), np.max(x), 100)
    ax.plot(xr, intercept + slope * xr, **kw)


def plot_data_overview(df, group="country", x="gdp_percap", log_x="log_gdp",
                       y="life_exp", time="year"):
    """A) levels, B) log GDP, C) both series over time."""
    apply_style()
    colors = _colors(df, group)
    fig, axes = plt.subplots(1, 3, figsize=(15, 4.5))

    for g, gdf in df.groupby(group, observed=True):
        c = colors[g]
        axes[0].scatter(gdf[x], gdf[y], s=25, alpha=.8, color=c, label=g)
        axes[1].scatter(gdf[log_x], gdf[y], s=25, alpha=.8, color=c, label=g)
        axes[2].plot(gdf[time], gdf[y], marker="o", ms=4, color=c, lw=1.8, label=g)

    axes[0].set_xlabel("GDP per capita"); axes[0].set_ylabel("Life expectancy")
    axes[0].set_title("A) Raw Levels"); axes[0].legend(fontsize=8)
    axes[1].set_xlabel("log(GDP per capita)"); axes[1].set_ylabel("Life expectancy")
    axes[1].set_title("B) Log GDP"); axes[1].legend(fontsize=8)
    axes[2].set_xlabel("Year"); axes[2].set_ylabel("Life expectancy")
    axes[2].set_title("C) Trajectories"); axes[2].legend(fontsize=8)
    fig.suptitle("Section 1: The Two-Country Panel", fontsize=14, y=1.03)
    fig.tight_layout()
    return fig


def plot_pooled_vs_fe(df, pooled, lsdv, group="country", x="log_gdp",
                      y="life_exp"):
    """
    A) pooled OLS line, B) one parallel line per country from the
    dummy-variable fit, C) slope comparison.
    """
    apply_style()
    colors = _colors(df, group)
    fig, axes = plt.subplots(1, 3, figsize=(15, 4.5))

    ax = axes[0]
    for g, gdf in df.groupby(group, observed=True):
        ax.scatter(gdf[x], gdf[y], s=25, alpha=.7, color=colors[g], label=g)
    b_pool = pooled["coef"][x]
    _line(ax, df[x], pooled["coef"]["Intercept"], b_pool, c=CY, lw=2.5,
          label=f"Pooled slope={b_pool:.2f}")
    ax.set_xlabel("log(GDP per capita)"); ax.set_ylabel("Life expectancy")
    ax.set_title("A) Pooled OLS"); ax.legend(fontsize=8)

    ax = axes[1]
    b_fe = lsdv["coef"][x]
    for g, gdf in df.groupby(group, observed=True):
        ax.scatter(gdf[x], gdf[y], s=25, alpha=.7, color=colors[g])
        _line(ax, gdf[x], lsdv["intercepts"][g], b_fe, c=colors[g], lw=2.5)
    handles = [Line2D([0], [0], color=colors[g], lw=2) for g in colors]
    ax.legend(handles, [f"{g} (alpha={lsdv['intercepts'][g]:.1f})" for g in colors],
              fontsize=8)
    ax.set_xlabel("log(GDP per capita)"); ax.set_ylabel("Life expectancy")
    ax.set_title(f"B) Country FE (slope={b_fe:.2f})")

    ax = axes[2]
    ms = ["Pooled OLS", "Country FE"]; vs = [b_pool, b_fe]; cs = [CR, CB]
    bars = ax.bar(ms, vs, color=cs, width=.45, edgecolor="white")
    for bar, v in zip(bars, vs):
        ax.text(bar.get_x() + bar.get_width() / 2, v, f"{v:.3f}",
                ha="center", va="bottom", fontsize=9)
    ax.axhline(0, color="#333", lw=.8)
    ax.set_ylabel("beta_hat(log GDP)"); ax.set_title("C) Slope Comparison")
    fig.suptitle("Section 2: Pooled OLS vs Country Fixed Effects", fontsize=14, y=1.03)
    fig.tight_layout()
    return fig


def plot_within(dm, means, comparison, group="country", x="log_gdp",
                y="life_exp", suffix="_within"):
    """
    A) raw scatter with each country's mean marked, B) demeaned scatter
    with the within slope, C) within vs dummy slope.
    """
    apply_style()
    colors = _colors(dm, group)
    fig, axes = plt.subplots(1, 3, figsize=(15, 4.5))

    ax = axes[0]
    for g, gdf in dm.groupby(group, observed=True):
        ax.scatter(gdf[x], gdf[y], s=20, alpha=.35, color=colors[g], label=g)
        ax.scatter(means.loc[g, x], means.loc[g, y], s=180, marker="X",
                   color=colors[g], edgecolors="black", zorder=3)
    ax.set_xlabel("log(GDP per capita)"); ax.set_ylabel("Life expectancy")
    ax.set_title("A) Country Means (X)"); ax.legend(fontsize=8)

    ax = axes[1]
    xd, yd = x + suffix, y + suffix
    for g, gdf in dm.groupby(group, observed=True):
        ax.scatter(gdf[xd], gdf[yd], s=25, alpha=.8, color=colors[g], label=g)
    b_w = comparison["beta_within"]
    _line(ax, dm[xd], 0.0, b_w, c=CG, lw=2.5, label=f"Within slope={b_w:.3f}")
    ax.axhline(0, color=CY, lw=.8, ls=":"); ax.axvline(0, color=CY, lw=.8, ls=":")
    ax.set_xlabel("log GDP - country mean"); ax.set_ylabel("Life exp. - country mean")
    ax.set_title("B) Demeaned (Within)"); ax.legend(fontsize=8)

    ax = axes[2]
    ms = ["Within", "Dummies"]; vs = [b_w, comparison["beta_lsdv"]]
    bars = ax.bar(ms, vs, color=[CG, CB], width=.45, edgecolor="white")
    for bar, v in zip(bars, vs):
        ax.text(bar.get_x() + bar.get_width() / 2, v, f"{v:.6f}",
                ha="center", va="bottom", fontsize=9)
    ax.set_ylabel("beta_hat(log GDP)")
    ax.set_title("C) Identical Slopes" if comparison["match"] else "C) Slopes")
    fig.suptitle("Section 3: The Within Transformation", fontsize=14, y=1.03)
    fig.tight_layout()
    return fig


def _year_effects(res, time):
    prefix = f"C({time})[T."
    items = [(int(k[len(prefix):-1]), v) for k, v in res["coef"].items()
             if k.startswith(prefix)]
    return zip(*items) if items else ((), ())


def _coef_panel(ax, res, treatment, time, title):
    years, effects = _year_effects(res, time)
    years = np.array(years); effects = np.array(effects, dtype=float)
    ok = ~np.isnan(effects)
    ax.plot(years[ok], effects[ok], "o-", color=CB, lw=1.8, ms=5, label="Year effects")
    for yr in years[~ok]:
        ax.axvline(yr, color=CR, ls="--", lw=1.5)
        ax.text(yr, ax.get_ylim()[1], f" {yr}: NA", color=CR, fontsize=8,
                va="top", ha="right")
    tau = res["coef"][treatment]
    label = "Treatment: NA" if np.isnan(tau) else f"Treatment={tau:.2f}"
    ax.axhline(0 if np.isnan(tau) else tau, color=CO, lw=2,
               ls=":" if np.isnan(tau) else "-", label=label)
    ax.set_xlabel("Year"); ax.set_ylabel("Coefficient")
    ax.set_title(title); ax.legend(fontsize=8)


def plot_twfe_collinearity(df, comparison, treatment_year, group="country",
                           y="life_exp", time="year", treatment="treated"):
    """
    A) outcome by year with the treated period shaded, B) and C) the
    coefficients from each term order, with the inestimable term marked.
    """
    apply_style()
    colors = _colors(df, group)
    fig, axes = plt.subplots(1, 3, figsize=(15, 4.5))

    ax = axes[0]
    for g, gdf in df.groupby(group, observed=True):
        ax.plot(gdf[time], gdf[y], marker="o", ms=4, color=colors[g], lw=1.8, label=g)
    ax.axvspan(treatment_year, df[time].max(), color=CO, alpha=.12,
               label=f"{treatment} = 1")
    ax.set_xlabel("Year"); ax.set_ylabel("Life expectancy")
    ax.set_title("A) Synthetic Treatment"); ax.legend(fontsize=8)

    _coef_panel(axes[1], comparison["first"], treatment, time,
                "B) Treatment Term First")
    _coef_panel(axes[2], comparison["last"], treatment, time,
                "C) Treatment Term Last")
    fig.suptitle("Section 4: Two-Way FE and Collinearity", fontsize=14, y=1.03)
    fig.tight_layout()
    return fig
