"""
Section 3: Panel Data -- Fixed Effects (Within Estimator)

Implements the within (demeaning) estimator, the equivalent least-squares
dummy-variable (LSDV) regression, and Arellano (1987) clustered standard
errors from scratch.
"""

import numpy as np
import pandas as pd

from . import ols as m_ols
from .design import levels


def group_means(df, group, columns):
    """
    Per-group arithmetic means.

    Parameters
    ----------
    df : DataFrame
    group : str
        Grouping column (e.g. "country").
    columns : sequence of str
        Columns to average.

    Returns
    -------
    DataFrame indexed by group, one column per averaged variable.
    """
    return df.groupby(group, observed=True)[list(columns)].mean()


def within_demean(df, group, columns, suffix="_within"):
    """
    Demean columns within each group for fixed-effects estimation.

    Parameters
    ----------
    df : DataFrame
        Stacked panel.
    group : str
        Unit identifier column.
    columns : sequence of str
        Columns to demean.
    suffix : str
        Appended to each column name for the demeaned copy.

    Returns
    -------
    DataFrame
        Copy of ``df`` with ``<col><suffix>`` columns added.
    """
    out = df.copy()
    grouped = df.groupby(group, observed=True)
    for col in columns:
        out[col + suffix] = df[col] - grouped[col].transform("mean")
    return out


def estimate_fe(df, outcome, regressor, group):
    """
    Fixed-effects (within) estimation with clustered standard errors.

    For a single regressor:
        beta_FE = (X_dm' X_dm)^{-1} X_dm' y_dm

    Parameters
    ----------
    df : DataFrame
    outcome : str
    regressor : str
        Single regressor column.
    group : str
        Unit identifier column.

    Returns
    -------
    dict with keys:
        beta_fe    : fixed-effects coefficient
        se_homosk  : homoskedastic SE, dof N - G - 1
        se_cluster : clustered SE (Arellano 1987)
        r2_within  : R^2 of the demeaned regression
        residuals  : within-estimator residuals
        nobs, n_groups
    """
    dm = within_demean(df, group, [outcome, regressor])
    yd = dm[outcome + "_within"].to_numpy(dtype=float)
    td = dm[regressor + "_within"].to_numpy(dtype=float)
    groups = df[group].to_numpy()

    txt = td @ td
    if txt == 0:
        raise ValueError(f"{regressor!r} has no within-{group} variation")

    b_fe = (td @ yd) / txt
    e_fe = yd - b_fe * td

    N = len(td)
    G = len(pd.unique(groups))
    K = 1
    # The G group means were estimated too
    se_homosk = np.sqrt((e_fe @ e_fe) / (N - G - K) / txt)
    se_cluster = clustered_se_scalar(td, e_fe, groups)

    return dict(
        beta_fe=b_fe,
        se_homosk=se_homosk,
        se_cluster=se_cluster,
        r2_within=1 - (e_fe @ e_fe) / (yd @ yd),
        residuals=e_fe,
        nobs=N,
        n_groups=G,
    )


def clustered_se_scalar(X_dm, residuals, unit_ids):
    """
    Arellano (1987) clustered standard errors for a scalar within estimator.

    V_cluster = (X'X)^{-1} * B * (X'X)^{-1}
    where B = sum_g (X_g' e_g)(X_g' e_g)' with finite-sample correction.

    Parameters
    ----------
    X_dm : ndarray, shape (n,)
        Demeaned regressor (scalar).
    residuals : ndarray, shape (n,)
        Within-estimator residuals.
    unit_ids : ndarray, shape (n,)
        Unit identifiers.

    Returns
    -------
    float
        Clustered standard error; NaN with a single cluster.
    """
    unique_units = pd.unique(unit_ids)
    G = len(unique_units)
    N = len(X_dm)
    K = 1
    if G < 2:
        return np.nan
    XtX = X_dm @ X_dm

    B = 0.0
    for g in unique_units:
        mask = unit_ids == g
        score = (X_dm[mask] * residuals[mask]).sum()
        B += score ** 2

    # Finite-sample correction: G/(G-1) * (N-1)/(N-K)
    dof_corr = (G / (G - 1)) * ((N - 1) / (N - K))

    return np.sqrt(B / XtX ** 2 * dof_corr)


def estimate_lsdv(df, outcome, regressor, group):
    """
    Least-squares dummy variable regression:  outcome ~ regressor + C(group).

    Returns the OLS result dict from ``ols.estimate`` plus
        intercepts : Series of implied per-group intercepts alpha_g
    """
    res = m_ols.estimate(df, outcome, [regressor, f"C({group})"])
    coef = res["coef"]
    base = coef["Intercept"]
    prefix = f"C({group})[T."
    shifts = {k[len(prefix):-1]: v for k, v in coef.items()
              if k.startswith(prefix)}
    intercepts = {}
    for level in levels(df[group]):
        intercepts[level] = base + shifts.get(f"{level}", 0.0)
    res["intercepts"] = pd.Series(intercepts)
    return res


def compare_within_and_dummies(df, outcome, regressor, group, tol=1e-8):
    """
    Within estimator versus dummy-variable estimator.

    Fits  outcome_within ~ regressor_within  and
          outcome ~ regressor + C(group)
    and compares the two slopes, which FWL says must coincide.

    Returns
    -------
    dict with keys:
        within  : OLS result on the demeaned data
        lsdv    : OLS result with group dummies
        beta_within, beta_lsdv : the two slopes
        match   : bool, True if they agree to ``tol``
    """
    dm = within_demean(df, group, [outcome, regressor])
    within = m_ols.estimate(dm, outcome + "_within", [regressor + "_within"])
    lsdv = estimate_lsdv(df, outcome, regressor, group)
    b_w = within["coef"][regressor + "_within"]
    b_d = lsdv["coef"][regressor]
    return dict(
        within=within,
        lsdv=lsdv,
        beta_within=b_w,
        beta_lsdv=b_d,
        match=bool(np.abs(b_w - b_d) < tol),
    )
