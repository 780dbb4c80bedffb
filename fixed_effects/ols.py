"""
Section 2: OLS with named terms

Fits ordinary least squares on a DataFrame given an outcome column and an
ordered list of terms, and reports coefficients, standard errors, sample
size and R^2. Collinear columns are dropped (reported as NaN) and flagged
with a RankDeficiencyWarning rather than silently absorbed.
"""

import warnings

import numpy as np
import pandas as pd
from scipy import stats

from .design import build_design
from .utils import ols_fit


class RankDeficiencyWarning(UserWarning):
    """The design matrix was rank-deficient and columns were dropped."""


def estimate(df, outcome, terms, intercept=True):
    """
    OLS of ``outcome`` on ``terms``.

    Parameters
    ----------
    df : DataFrame
        Data; rows with missing values in the used columns are an error.
    outcome : str
        Outcome column.
    terms : sequence of str
        Ordered regressors; ``C(name)`` adds fixed-effect indicators.
    intercept : bool
        Include a constant.

    Returns
    -------
    dict with keys:
        coef      : Series of estimates, NaN where inestimable
        se        : Series of homoskedastic SEs
        pvalue    : Series of two-sided t-test p-values
        dropped   : list of inestimable design columns
        nobs      : number of observations
        rank      : number of estimated coefficients
        r2        : R^2 (centered if intercept, else uncentered)
        adj_r2    : adjusted R^2
        s2        : error variance
        fitted    : Series of fitted values
        residuals : Series of residuals
        outcome, terms : the model specification
    """
    X = build_design(df, list(terms), intercept=intercept)
    y = df[outcome].astype(float)
    if y.isna().any() or X.isna().any().any():
        raise ValueError(f"Missing values in model for {outcome!r}")

    b, se, e, s2 = ols_fit(X.to_numpy(), y.to_numpy())
    coef = pd.Series(b, index=X.columns)
    se = pd.Series(se, index=X.columns)
    dropped = list(coef.index[coef.isna()])
    if dropped:
        warnings.warn(
            f"{len(dropped)} coefficient(s) not defined because of "
            f"singularities: {', '.join(dropped)}",
            RankDeficiencyWarning,
            stacklevel=2,
        )

    n = len(y)
    rank = int(coef.notna().sum())
    resid = pd.Series(e, index=df.index)
    fitted = y - resid

    ssr = e @ e
    yv = y.to_numpy()
    sst = ((yv - yv.mean()) ** 2).sum() if intercept else (yv ** 2).sum()
    r2 = 1 - ssr / sst if sst > 0 else np.nan
    df_resid = n - rank
    df_model = rank - 1 if intercept else rank
    adj_r2 = (1 - (1 - r2) * (n - int(intercept)) / df_resid
              if df_resid > 0 else np.nan)

    with np.errstate(invalid="ignore", divide="ignore"):
        t = coef / se
    pvalue = (pd.Series(2 * stats.t.sf(np.abs(t), df_resid), index=X.columns)
              if df_resid > 0 else pd.Series(np.nan, index=X.columns))

    return dict(
        coef=coef,
        se=se,
        pvalue=pvalue,
        dropped=dropped,
        nobs=n,
        rank=rank,
        df_model=df_model,
        r2=r2,
        adj_r2=adj_r2,
        s2=s2,
        fitted=fitted,
        residuals=resid,
        outcome=outcome,
        terms=list(terms),
    )
