"""
Pytest fixtures for the leafoptimizer test suite.
"""

import pytest

from leafoptimizer import (
    drop_units,
    make_bakepar,
    make_constants,
    make_enviropar,
    make_leafpar,
    merge_parameters,
)
from leafoptimizer.ecophysiology import bake
from leafoptimizer.photosynthesis import prepare_for_tleaf
from leafoptimizer.root_finder import find_tleaf


@pytest.fixture
def bake_par():
    return make_bakepar()


@pytest.fixture
def constants():
    return make_constants()


@pytest.fixture
def enviro_par():
    return make_enviropar()


@pytest.fixture
def leaf_par():
    return make_leafpar()


@pytest.fixture
def upars(bake_par, constants, enviro_par, leaf_par):
    """Default parameters, merged and unitless."""
    return drop_units(merge_parameters(bake_par, constants, enviro_par, leaf_par))


@pytest.fixture
def tleaf_pars(upars):
    """Default parameters with everything the energy balance needs."""
    return prepare_for_tleaf(upars)


@pytest.fixture
def baked_pars(tleaf_pars):
    """Default parameters at the energy-balanced leaf temperature, biochemistry baked."""
    T_leaf = find_tleaf(tleaf_pars).root
    return {**tleaf_pars, 'T_leaf': T_leaf, **bake(tleaf_pars, T_leaf)}


@pytest.fixture
def carbon_costs():
    return {'H2O': 0.001, 'SR': 0.0}
