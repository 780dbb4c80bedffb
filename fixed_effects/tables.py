"""
Side-by-side regression tables.

Cells read ``estimate (se)`` with significance stars; inestimable
coefficients read ``NA``; terms a model does not contain are left blank.
"""

import numpy as np
import pandas as pd

from .design import parse_term
from .panel_fe import group_means


def _stars(p):
    if np.isnan(p):
        return ""
    if p < 0.01:
        return "***"
    if p < 0.05:
        return "**"
    if p < 0.1:
        return "*"
    return ""


def _fe_terms(res):
    return [parse_term(t)[0] for t in res["terms"] if parse_term(t)[1]]


def regression_table(results, digits=3, collapse_fe=False):
    """
    Build a comparison table from named OLS results.

    Parameters
    ----------
    results : dict
        Model name -> result dict from ``ols.estimate``.
    digits : int
        Decimal places for estimates and SEs.
    collapse_fe : bool
        Replace indicator rows ``C(x)[T.*]`` with one ``x FE`` row.

    Returns
    -------
    DataFrame of strings, rows = design columns then N / R2 / Dropped.
    """
    rows = []
    for res in results.values():
        for name in res["coef"].index:
            if collapse_fe and name.startswith("C("):
                continue
            if name not in rows:
                rows.append(name)
    fe_rows = []
    if collapse_fe:
        for res in results.values():
            for fe in _fe_terms(res):
                label = f"{fe} FE"
                if label not in fe_rows:
                    fe_rows.append(label)

    table = {}
    for model, res in results.items():
        cells = {}
        for name in rows:
            if name not in res["coef"].index:
                cells[name] = ""
                continue
            b = res["coef"][name]
            if np.isnan(b):
                cells[name] = "NA"
                continue
            se = res["se"][name]
            cells[name] = (f"{b:.{digits}f}{_stars(res['pvalue'][name])} "
                           f"({se:.{digits}f})")
        fes = _fe_terms(res)
        for label in fe_rows:
            cells[label] = "Yes" if label[:-3] in fes else "No"
        cells["N"] = f"{res['nobs']:d}"
        cells["R2"] = f"{res['r2']:.{digits}f}"
        cells["Dropped"] = ", ".join(res["dropped"]) if res["dropped"] else ""
        table[model] = cells

    index = rows + fe_rows + ["N", "R2", "Dropped"]
    out = pd.DataFrame(table, index=index)
    if not (out.loc["Dropped"] != "").any():
        out = out.drop(index="Dropped")
    return out


def format_table(table, title=None):
    """
    Fixed-width text rendering of a table of strings.
    """
    body = table.fillna("").astype(str)
    text = body.to_string()
    lines = text.split("\n")
    width = max(len(line) for line in lines)
    out = []
    if title:
        out.append(title)
    out.append("=" * width)
    out.append(lines[0])
    out.append("-" * width)
    out.extend(lines[1:])
    out.append("=" * width)
    return "\n".join(out)


def means_table(df, group, columns, digits=3):
    """Per-group means as a rounded table."""
    return group_means(df, group, columns).round(digits)
