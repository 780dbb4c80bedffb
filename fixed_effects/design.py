"""
Design matrices with an explicit, ordered list of terms.

A term is either a column name (continuous regressor) or ``C(name)``
(a categorical variable expanded into indicator columns). Term order is
preserved column-for-column, which matters because the least-squares
core resolves collinearity by dropping the *later* column.
"""

import re

import numpy as np
import pandas as pd

_CATEGORICAL = re.compile(r"^C\((\w+)\)$")


def parse_term(term):
    """
    Split a term into (column, is_categorical).

    >>> parse_term("C(country)")
    ('country', True)
    >>> parse_term("log_gdp")
    ('log_gdp', False)
    """
    m = _CATEGORICAL.match(term.strip())
    if m:
        return m.group(1), True
    return term.strip(), False


def levels(series):
    """Category levels in their declared order (sorted if undeclared)."""
    if isinstance(series.dtype, pd.CategoricalDtype):
        return list(series.cat.remove_unused_categories().cat.categories)
    return sorted(series.dropna().unique())


def indicator_columns(df, column, drop_first=True):
    """
    0/1 indicators for each level of ``df[column]``.

    Returns a DataFrame with columns named ``C(column)[T.level]``.
    The first level is the omitted reference category when
    ``drop_first`` is set.
    """
    lv = levels(df[column])
    if drop_first:
        lv = lv[1:]
    values = df[column].to_numpy()
    return pd.DataFrame(
        {f"C({column})[T.{level}]": (values == level).astype(float)
         for level in lv},
        index=df.index,
    )


def build_design(df, terms, intercept=True):
    """
    Build the design matrix for an ordered list of terms.

    Parameters
    ----------
    df : DataFrame
        Source data.
    terms : sequence of str
        Regressors, in order. ``C(name)`` marks a categorical term.
    intercept : bool
        Prepend an ``Intercept`` column.

    Returns
    -------
    X : DataFrame
        Design matrix with one named column per estimated coefficient.
    """
    if not terms and not intercept:
        raise ValueError("Design has no terms and no intercept")

    blocks = []
    if intercept:
        blocks.append(pd.DataFrame({"Intercept": np.ones(len(df))},
                                   index=df.index))
    # Without an intercept the first categorical term keeps all its levels
    # and so plays the role of the constant.
    spans_constant = intercept
    for term in terms:
        column, categorical = parse_term(term)
        if column not in df.columns:
            raise ValueError(f"Unknown column in term {term!r}")
        if categorical:
            blocks.append(indicator_columns(df, column,
                                            drop_first=spans_constant))
            spans_constant = True
        else:
            blocks.append(df[[column]].astype(float))
    return pd.concat(blocks, axis=1)
