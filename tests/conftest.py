import pytest

from fixed_effects import data as m_data


@pytest.fixture
def panel():
    """Simulated two-country panel with log GDP, Canada as reference."""
    full = m_data.simulate_gapminder(("Canada", "Mexico"), seed=7)
    return m_data.add_log_gdp(m_data.select_countries(full, ["Canada", "Mexico"]))


@pytest.fixture
def panel3():
    countries = ("Chile", "Kenya", "Japan")
    full = m_data.simulate_gapminder(countries, seed=11)
    return m_data.add_log_gdp(m_data.select_countries(full, countries))
