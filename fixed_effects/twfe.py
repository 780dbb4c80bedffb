"""
Section 4: Two-Way Fixed Effects (TWFE) and the collinearity trap

A treatment that switches on for every unit in the same year is, column
for column, the sum of the post-threshold year indicators. Adding it to a
model that already has year fixed effects makes the design rank-deficient:
least squares keeps whichever columns come first and drops the one that
completes the linear dependence. The "treatment effect" reported is then
an artifact of term order.
"""

import numpy as np

from . import ols as m_ols


def add_treatment(df, treatment_year, treated_units=None, unit="country",
                  time="year", name="treated"):
    """
    Add a synthetic 0/1 treatment indicator.

    Parameters
    ----------
    df : DataFrame
        Panel.
    treatment_year : int
        First treated period: ``treated = 1`` where ``time >= treatment_year``.
    treated_units : sequence or None
        Units that receive treatment. None means every unit.
    unit, time : str
        Unit and time columns.
    name : str
        Name of the new column.

    Returns
    -------
    DataFrame
        Copy of ``df`` with the indicator column.
    """
    out = df.copy()
    post = out[time] >= treatment_year
    if treated_units is not None:
        post &= out[unit].isin(list(treated_units))
    out[name] = post.astype(float)
    return out


def estimate_twfe(df, outcome, treatment, unit="country", time="year",
                  treatment_first=True):
    """
    Two-way fixed effects:  outcome ~ treatment + C(unit) + C(time).

    ``treatment_first=False`` moves the treatment term to the end of the
    term list. The returned dict is ``ols.estimate``'s with an extra
    ``treatment_coef`` key (NaN when the treatment column was dropped).
    """
    fe_terms = [f"C({unit})", f"C({time})"]
    terms = [treatment] + fe_terms if treatment_first else fe_terms + [treatment]
    res = m_ols.estimate(df, outcome, terms)
    res["treatment_coef"] = res["coef"][treatment]
    return res


def term_order_comparison(df, outcome, treatment, unit="country",
                          time="year"):
    """
    Fit the TWFE model with the treatment term first and last.

    Returns
    -------
    dict with keys:
        first, last   : OLS result dicts for each term order
        dropped_first : columns dropped when treatment comes first
        dropped_last  : columns dropped when treatment comes last
        tau_first     : treatment estimate, treatment first
        tau_last      : treatment estimate, treatment last (NaN if dropped)
        rank_deficient: True if either fit dropped a column
        order_dependent : True if the two orders disagree on the estimate
    """
    first = estimate_twfe(df, outcome, treatment, unit, time,
                          treatment_first=True)
    last = estimate_twfe(df, outcome, treatment, unit, time,
                         treatment_first=False)
    tau_first = first["treatment_coef"]
    tau_last = last["treatment_coef"]
    same = (np.isnan(tau_first) and np.isnan(tau_last)) or \
        bool(np.isclose(tau_first, tau_last, rtol=1e-8, atol=1e-10))
    return dict(
        first=first,
        last=last,
        dropped_first=first["dropped"],
        dropped_last=last["dropped"],
        tau_first=tau_first,
        tau_last=tau_last,
        rank_deficient=bool(first["dropped"] or last["dropped"]),
        order_dependent=not same,
    )


def explain_term_order(comparison, treatment="treated"):
    """
    Plain-text reading of a ``term_order_comparison`` result.

    The wording follows what was actually dropped, so a treatment that is
    constant (starting in the first period, or never starting) is not
    described as a year effect in disguise.
    """
    dropped_first = comparison["dropped_first"]
    dropped_last = comparison["dropped_last"]
    if treatment in dropped_first and treatment in dropped_last:
        return (
            f"Here {treatment} is dropped in both orders. It does not vary\n"
            "at all in this sample (every row is treated, or none is), so it\n"
            "duplicates the intercept or is a column of zeros, and no term\n"
            "order can identify tau. The NA is the only honest answer."
        )
    if not dropped_first and not dropped_last:
        return (
            "Neither order drops a column here: the design is full rank and\n"
            f"both orders give the same tau_hat for {treatment}. Term order\n"
            "only matters once the design is rank-deficient."
        )
    if treatment in dropped_last and treatment not in dropped_first:
        absorbed = ", ".join(dropped_first)
        return (
            "With the treatment term first, tau_hat is not a treatment effect\n"
            f"at all: it is the coefficient {absorbed} would have carried,\n"
            "the effect of that year relative to the first. With the treatment\n"
            "term last, the treatment is the dropped column. Same data, same\n"
            'model, and the "effect" depends only on the order terms were\n'
            "written in."
        )
    return (
        f"The two orders drop different columns "
        f"({', '.join(dropped_first) or 'none'} vs "
        f"{', '.join(dropped_last) or 'none'}), so the coefficients that\n"
        "survive are not comparable across orders."
    )
