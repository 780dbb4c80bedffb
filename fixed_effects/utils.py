"""
Shared least-squares utilities used across the fixed-effects modules.
"""

import numpy as np


def independent_columns(X, tol=1e-7):
    """
    Find the columns of X that are not linear combinations of the
    columns before them.

    Columns are scanned left to right. Each one is orthogonalised against
    the columns already kept; if what is left has norm below
    ``tol * ||column||`` the column is dropped. This is the limited pivoting
    used by pivoted-QR least-squares solvers: the *later* of two collinear
    columns is the one that goes.

    Parameters
    ----------
    X : ndarray, shape (n, k)
        Design matrix.
    tol : float
        Relative tolerance for declaring a column dependent.

    Returns
    -------
    keep : ndarray of bool, shape (k,)
        True for columns that enter the fit.
    """
    X = np.asarray(X, dtype=float)
    n, k = X.shape
    keep = np.zeros(k, dtype=bool)
    Q = np.empty((n, 0))
    for j in range(k):
        col = X[:, j]
        norm = np.linalg.norm(col)
        if norm == 0:
            continue
        resid = col - Q @ (Q.T @ col)
        # second pass keeps Gram-Schmidt stable
        resid = resid - Q @ (Q.T @ resid)
        rnorm = np.linalg.norm(resid)
        if rnorm > tol * norm:
            keep[j] = True
            Q = np.column_stack([Q, resid / rnorm])
    return keep


def ols_fit(X, y):
    """
    OLS estimation via the normal equations, dropping collinear columns.

    Parameters
    ----------
    X : ndarray, shape (n, k)
        Design matrix (should include a constant column if an intercept is desired).
    y : ndarray, shape (n,)
        Outcome vector.

    Returns
    -------
    b : ndarray, shape (k,)
        Coefficient estimates  beta_hat = (X'X)^{-1} X'y  on the kept
        columns; NaN for columns dropped as collinear.
    se : ndarray, shape (k,)
        Homoskedastic standard errors (NaN for dropped columns).
    e : ndarray, shape (n,)
        Residuals  y - X @ b.
    s2 : float
        Estimated error variance  e'e / (n - rank).  NaN if no degrees
        of freedom remain.
    """
    X = np.asarray(X, dtype=float)
    y = np.asarray(y, dtype=float)
    n, k = X.shape
    if len(y) != n:
        raise ValueError(f"Outcome has {len(y)} rows but design has {n}")

    keep = independent_columns(X)
    Xk = X[:, keep]
    r = Xk.shape[1]

    b = np.full(k, np.nan)
    se = np.full(k, np.nan)
    if r == 0:
        return b, se, y.copy(), np.nan

    XtX_inv = np.linalg.inv(Xk.T @ Xk)
    bk = XtX_inv @ (Xk.T @ y)
    e = y - Xk @ bk
    s2 = (e @ e) / (n - r) if n > r else np.nan

    b[keep] = bk
    se[keep] = np.sqrt(np.diag(s2 * XtX_inv))
    return b, se, e, s2

