"""
leafoptimizer: optimize leaf traits to different environments in silico.

Couples a leaf energy balance with C3 photosynthesis and finds the stomatal
conductance, leaf size and/or stomatal ratio that maximize net carbon gain.
"""
import logging

from leafoptimizer.errors import ConvergenceError, InternalConsistencyError, LeafOptimizerError
from leafoptimizer.optimize_leaf import (
    RefitController,
    RefitState,
    Solution,
    carbon_balance,
    find_optimum,
    get_bounds,
    get_init,
    optimize_leaf,
)
from leafoptimizer.parameters import (
    Q_,
    BakePar,
    Constants,
    EnviroPar,
    LeafPar,
    drop_units,
    make_bakepar,
    make_constants,
    make_enviropar,
    make_leafpar,
    merge_parameters,
    parameter_names,
    set_parameter_units,
    ureg,
)
from leafoptimizer.root_finder import RootSolution, find_A, find_root, find_tleaf

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.0.1"
