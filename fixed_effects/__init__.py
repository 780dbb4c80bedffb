"""
fixed_effects -- the estimators behind the fixed-effects walkthrough.

Least squares, the within estimator and two-way fixed effects are
implemented with numpy / pandas linear algebra, with no black-box
econometrics packages, so the rank-deficiency behaviour they illustrate
is visible in the code.
"""

from .utils import ols_fit, independent_columns
from .ols import RankDeficiencyWarning
from . import data
from . import design
from . import ols
from . import panel_fe
from . import twfe
from . import tables
