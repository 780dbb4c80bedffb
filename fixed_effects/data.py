"""
Data loaders for the fixed-effects walkthrough.
================================================

The walkthrough uses the Gapminder table: life expectancy, population and
GDP per capita for 142 countries, every five years from 1952 to 2007.

1. **Local file** -- any TSV/CSV with the Gapminder columns, passed as
   ``path`` (either the original camelCase names or the snake_case names
   used here).

2. **Cached download** -- the first successful download is written to
   ``data/gapminder.tsv`` and reused afterwards.

3. **Download** -- from the public mirrors in ``GAPMINDER_URLS``.

If none of these is available, ``load_panel(source="auto")`` falls back to
``simulate_gapminder``, a synthetic panel with the same columns.
"""

import http.client
import io
import urllib.error
import urllib.request
from pathlib import Path

import numpy as np
import pandas as pd

GAPMINDER_URLS = [
    "https://raw.githubusercontent.com/jennybc/gapminder/master/"
    "inst/extdata/gapminder.tsv",
    "https://raw.githubusercontent.com/plotly/datasets/master/"
    "gapminderDataFiveYear.csv",
]

DATA_DIR = Path(__file__).resolve().parents[1] / "data"
DEFAULT_CACHE = DATA_DIR / "gapminder.tsv"

DEFAULT_COUNTRIES = ("Canada", "Mexico")
GAPMINDER_YEARS = tuple(range(1952, 2008, 5))

COLUMN_NAMES = {
    "country": "country",
    "continent": "continent",
    "year": "year",
    "lifeExp": "life_exp",
    "lifeexp": "life_exp",
    "life_exp": "life_exp",
    "pop": "pop",
    "gdpPercap": "gdp_percap",
    "gdppercap": "gdp_percap",
    "gdp_percap": "gdp_percap",
}
REQUIRED = ["country", "year", "life_exp", "gdp_percap"]


def normalize_columns(df):
    """
    Rename Gapminder columns to the names used throughout the package.

    Raises
    ------
    ValueError
        If any of country / year / life expectancy / GDP per capita is missing.
    """
    df = df.rename(columns={c: COLUMN_NAMES[c] for c in df.columns
                            if c in COLUMN_NAMES})
    missing = [c for c in REQUIRED if c not in df.columns]
    if missing:
        raise ValueError(f"Gapminder table is missing columns: {missing}")
    cols = [c for c in ["country", "continent", "year", "life_exp", "pop",
                        "gdp_percap"] if c in df.columns]
    df = df[cols].copy()
    df["year"] = df["year"].astype(int)
    return df


def _read_table(text):
    """Parse TSV or CSV text; the header line decides the separator."""
    header = text.split("\n", 1)[0]
    sep = "\t" if "\t" in header else ","
    return pd.read_csv(io.StringIO(text), sep=sep)


def fetch_gapminder(cache_path=DEFAULT_CACHE):
    """
    Download the Gapminder table, trying each mirror in turn.

    Parameters
    ----------
    cache_path : str or Path, optional
        If provided, the downloaded text is written here.

    Returns
    -------
    str : raw TSV/CSV text
    """
    for url in GAPMINDER_URLS:
        try:
            req = urllib.request.Request(url, headers={
                "User-Agent": "FixedEffectsPrimer/1.0"
            })
            with urllib.request.urlopen(req, timeout=60) as resp:
                raw = resp.read().decode("utf-8")
                if cache_path:
                    cache_path = Path(cache_path)
                    cache_path.parent.mkdir(parents=True, exist_ok=True)
                    cache_path.write_text(raw, encoding="utf-8")
                return raw
        except (urllib.error.URLError, OSError, http.client.HTTPException,
                UnicodeDecodeError) as e:
            print(f"  [Gapminder] Failed to fetch from {url}: {e}")
            continue

    raise ConnectionError(
        "Could not download the Gapminder table. Check your network "
        "connection or download it manually from:\n"
        f"  {GAPMINDER_URLS[0]}\n"
        "and save it to data/gapminder.tsv"
    )


def load_gapminder(path=None, cache_path=DEFAULT_CACHE):
    """
    Load the full Gapminder table.

    Parameters
    ----------
    path : str or Path, optional
        Local TSV/CSV. Must exist if given.
    cache_path : str or Path, optional
        Cache file checked before downloading, and written after.

    Returns
    -------
    DataFrame with columns country, continent, year, life_exp, pop, gdp_percap
    """
    if path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"No Gapminder file at {path}")
        return normalize_columns(_read_table(path.read_text(encoding="utf-8")))

    if cache_path and Path(cache_path).exists():
        return normalize_columns(
            _read_table(Path(cache_path).read_text(encoding="utf-8")))

    raw = fetch_gapminder(cache_path=cache_path)
    return normalize_columns(_read_table(raw))


def simulate_gapminder(countries=DEFAULT_COUNTRIES, years=GAPMINDER_YEARS,
                       beta=9.0, seed=42):
    """
    Simulate a country-year panel with Gapminder's columns.

    DGP:
        log_gdp_it  = g_i + 0.02 * (t - t0) + noise
        life_exp_it = alpha_i + beta * log_gdp_it + noise

    Countries listed later are poorer (lower g_i) but have *higher*
    alpha_i, so the pooled slope is biased toward zero (or below)
    while the within slope recovers beta.

    Returns
    -------
    DataFrame with columns country, continent, year, life_exp, pop, gdp_percap
    """
    rng = np.random.default_rng(seed)
    years = np.asarray(years)
    rows = []
    for i, country in enumerate(countries):
        g_i = 10.0 - 1.5 * i
        alpha_i = -30.0 + 14.0 * i
        log_gdp = g_i + 0.02 * (years - years[0]) + rng.normal(0, 0.05, len(years))
        life = alpha_i + beta * log_gdp + rng.normal(0, 0.8, len(years))
        pop = 2e7 * (1 + 0.015) ** (years - years[0]) * (1 + i)
        rows.append(pd.DataFrame({
            "country": country,
            "continent": "Simulated",
            "year": years.astype(int),
            "life_exp": life,
            "pop": pop.round(),
            "gdp_percap": np.exp(log_gdp),
        }))
    return pd.concat(rows, ignore_index=True)


def load_panel(source="auto", countries=DEFAULT_COUNTRIES, path=None,
               cache_path=DEFAULT_CACHE):
    """
    Load the full table from the requested source.

    Parameters
    ----------
    source : str
        "gapminder", "simulate", or "auto" (Gapminder, falling back to
        simulation).
    countries : sequence of str
        Countries to simulate when simulating.

    Returns
    -------
    (DataFrame, str) : the table and a label for the source used
    """
    if source == "simulate":
        return simulate_gapminder(countries), "simulated"
    if source == "gapminder":
        return load_gapminder(path, cache_path), "gapminder"
    if source != "auto":
        raise ValueError(f"Unknown data source {source!r}")

    try:
        print("[load_data] Trying Gapminder source...")
        df = load_gapminder(path, cache_path)
        print(f"[load_data] Loaded {len(df)} observations "
              f"({df['country'].nunique()} countries x "
              f"{df['year'].nunique()} years) from Gapminder")
        return df, "gapminder"
    except (FileNotFoundError, ConnectionError, ValueError) as e:
        print(f"[load_data] Gapminder unavailable: {e}")
        print("[load_data] Using simulated data")
        return simulate_gapminder(countries), "simulated"


def select_countries(df, countries):
    """
    Keep only the rows for ``countries``.

    The ``country`` column of the result is categorical with levels in the
    order given, so the first country is the reference category in
    fixed-effect regressions.
    """
    countries = list(countries)
    dups = sorted({c for c in countries if countries.count(c) > 1})
    if dups:
        raise ValueError(f"Duplicate countries: {dups}")
    known = set(df["country"].astype(str))
    unknown = [c for c in countries if c not in known]
    if unknown:
        raise ValueError(f"Countries not in data: {unknown}")
    out = df[df["country"].astype(str).isin(countries)].copy()
    out["country"] = pd.Categorical(out["country"].astype(str),
                                    categories=countries)
    return out.sort_values(["country", "year"]).reset_index(drop=True)


def add_log_gdp(df, column="gdp_percap", name="log_gdp"):
    """Add the natural log of ``column`` as ``name``."""
    values = df[column].astype(float)
    if (values <= 0).any():
        raise ValueError(f"{column!r} must be positive to take logs")
    out = df.copy()
    out[name] = np.log(values)
    return out
