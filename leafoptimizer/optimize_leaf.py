import itertools
import logging
import numbers
import warnings
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

import numpy as np
import pandas as pd
from scipy.optimize import minimize

from leafoptimizer.ecophysiology import bake
from leafoptimizer.energy_balance import E, energy_balance, is_closed
from leafoptimizer.errors import ConvergenceError, InternalConsistencyError
from leafoptimizer.parameters import (
    BakePar,
    Constants,
    EnviroPar,
    LeafPar,
    drop_units,
    merge_parameters,
    parameter_names,
    parameter_unit,
)
from leafoptimizer.photosynthesis import photo
from leafoptimizer.root_finder import find_A, find_tleaf
from leafoptimizer.utilities import (
    PPFD_to_shortwave,
    ReportingPolicy,
    gc2gw,
    logistic,
    logit_to_sr,
    sr_to_logit,
)

logger = logging.getLogger(__name__)

# Trait names accepted by optimize_leaf, and their positions in a trait vector
TRAITS = ('g_sc', 'leafsize', 'sr')
TRAIT_VECTOR = ('g_sc', 'leafsize', 'logit_sr')

SINGLE_TRAIT_METHOD = 'L-BFGS-B'
MULTI_TRAIT_METHOD = 'Powell'

CARBON_COSTS = ('H2O', 'SR')


@dataclass
class Solution:
    """One local optimization: trait values at the optimum, objective value and convergence code (0 = success)."""
    traits: dict
    value: float
    convergence: int
    n_init: int = 1


class RefitState(Enum):
    ATTEMPTING = 'attempting'
    CONVERGED = 'converged'
    EXHAUSTED = 'exhausted'


# ========================================================================================================================
# Bounds and initial values
# ========================================================================================================================

def get_bounds():
    """
    Lower and upper bounds of each trait.

    Based on Wright et al. 2017, leaf size varies from 0.01 cm² to 5000 cm²,
    so the characteristic leaf dimension (radius of largest circle) is roughly
    sqrt(0.01 / pi) / 100 = 0.0005 m to sqrt(5000 / pi) / 100 = 0.4 m.
    """
    return {
        'lower': {'g_sc': 0.0, 'leafsize': 0.0005, 'logit_sr': -10.0},
        'upper': {'g_sc': 10.0, 'leafsize': 0.4, 'logit_sr': 10.0},
    }


def get_init(traits, n_init):
    """
    Starting points for the optimizer.

    For each trait, `n_init` evenly spaced values strictly inside its bounds;
    with several traits these are crossed, giving n_init ** len(traits) starts.

    Parameters
    ----------
    traits : sequence of str
        Trait vector names, a subset of ('g_sc', 'leafsize', 'logit_sr').
    n_init : int

    Returns
    -------
    list of dict
        One {trait: value} dict per starting point.
    """
    bounds = get_bounds()
    axes = [
        np.linspace(bounds['lower'][trait], bounds['upper'][trait], n_init + 2)[1:-1]
        for trait in traits
    ]
    points = list(dict.fromkeys(
        tuple(float(x) for x in point) for point in itertools.product(*axes)
    ))
    if len(points) != n_init ** len(traits):
        raise InternalConsistencyError(
            f"Expected {n_init ** len(traits)} initial values for {len(traits)} trait(s), got {len(points)}"
        )
    return [dict(zip(traits, point)) for point in points]


# ========================================================================================================================
# Objective
# ========================================================================================================================

def update_traits(pars, trait_values):
    """
    Write trait values into a parameter dict and recompute what depends on
    them: g_sw from g_sc, and k_sc from logit_sr. Modifies `pars` in place.
    """
    if 'g_sc' in trait_values:
        pars['g_sc'] = trait_values['g_sc']
        pars['g_sw'] = gc2gw(pars['g_sc'], pars['D_c0'], pars['D_w0'])
    if 'leafsize' in trait_values:
        pars['leafsize'] = trait_values['leafsize']
    if 'logit_sr' in trait_values:
        pars['logit_sr'] = trait_values['logit_sr']
        pars['k_sc'] = logit_to_sr(pars['logit_sr'])
    return pars


def carbon_balance(trait_values, find_gsc, find_leafsize, find_sr, carbon_costs, upars):
    """
    Negative net carbon gain of a leaf with the given trait values.

    -(A - E × 1e6 × cost_H2O - g_sw × logistic(logit_sr) × cost_SR)

    Parameters
    ----------
    trait_values : sequence of float
        Values of the active traits in the order g_sc, leafsize, logit_sr.
    find_gsc, find_leafsize, find_sr : bool
        Which traits are active.
    carbon_costs : dict
        'H2O' (mol C / mol H2O) and 'SR' costs.
    upars : dict
        Unitless parameters; not modified.

    Returns
    -------
    float
        NaN if the leaf temperature or assimilation could not be solved.
    """
    n_traits = sum(bool(flag) for flag in (find_gsc, find_leafsize, find_sr))
    if len(trait_values) != n_traits:
        raise ValueError(
            f"trait_values must have length {n_traits}, not {len(trait_values)}"
        )

    names = [name for name, flag in zip(TRAIT_VECTOR, (find_gsc, find_leafsize, find_sr)) if flag]
    upars = update_traits(dict(upars), {name: float(x) for name, x in zip(names, trait_values)})

    ph = photo(upars)
    if ph['convergence'] != 0:
        return np.nan

    upars['g_sw'] = ph['g_sw']
    upars['g_uw'] = ph['g_uw']
    upars['logit_sr'] = ph['logit_sr']

    transpiration = E(ph['T_leaf'], upars)

    return -(
        ph['A']
        - transpiration * 1e6 * carbon_costs['H2O']
        - ph['g_sw'] * logistic(ph['logit_sr']) * carbon_costs['SR']
    )


# ========================================================================================================================
# Multi-start optimization
# ========================================================================================================================

def _convergence_code(fit):
    if fit.success and np.isfinite(fit.fun):
        return 0
    return int(fit.status) or 1


def select_best(solutions):
    """
    Best solution of a multi-start run: the lowest objective among converged
    solutions, or among all solutions if none converged. Ties go to the first.
    """
    converged = [soln for soln in solutions if soln.convergence == 0]
    candidates = converged or solutions
    return min(candidates, key=lambda soln: soln.value if np.isfinite(soln.value) else np.inf)


def find_optimum(find_gsc, find_leafsize, find_sr, carbon_costs, upars, n_init, reporter=None):
    """
    Minimize `carbon_balance` from every starting point of `get_init` and
    return the best `Solution`.

    L-BFGS-B is used for a single trait; Powell's method for two or three.
    """
    if reporter is None:
        reporter = ReportingPolicy()
    flags = (find_gsc, find_leafsize, find_sr)
    traits = [name for name, flag in zip(TRAIT_VECTOR, flags) if flag]

    init = get_init(traits, n_init)
    bounds = get_bounds()
    method = SINGLE_TRAIT_METHOD if len(traits) == 1 else MULTI_TRAIT_METHOD

    reporter.message(f"Optimizing leaf trait{'s' if len(traits) > 1 else ''} ...")

    solutions = []
    for x0 in init:
        fit = minimize(
            carbon_balance,
            np.array([x0[trait] for trait in traits]),
            args=(find_gsc, find_leafsize, find_sr, carbon_costs, upars),
            method=method,
            bounds=[(bounds['lower'][trait], bounds['upper'][trait]) for trait in traits],
        )
        soln = Solution(
            traits={trait: float(x) for trait, x in zip(traits, np.atleast_1d(fit.x))},
            value=float(fit.fun),
            convergence=_convergence_code(fit),
            n_init=n_init,
        )
        if soln.convergence != 0:
            logger.debug("Optimization from %s did not converge: %s", x0, fit.message)
        solutions.append(soln)

    reporter.message("done")
    return select_best(solutions)


# ========================================================================================================================
# Refit controller
# ========================================================================================================================

class RefitController:
    """
    Retry optimization on denser initial value grids until it converges.

    States
    ------
    ATTEMPTING -> CONVERGED  : latest solution has convergence code 0
    ATTEMPTING -> ATTEMPTING : failed, refit enabled, n_init + 1 <= max_init
    ATTEMPTING -> EXHAUSTED  : failed and refit disabled or n_init + 1 > max_init

    Parameters
    ----------
    attempt : callable
        attempt(n_init) -> Solution
    n_init : int
        Starting grid resolution.
    max_init : int
        Largest grid resolution to try.
    refit : bool
        If False, a single attempt is made.
    reporter : ReportingPolicy, optional

    Attributes
    ----------
    state : RefitState
    history : list of Solution
        Every attempt, in order.
    """

    def __init__(self, attempt, n_init=1, max_init=3, refit=True, reporter=None):
        self.attempt = attempt
        self.n_init = n_init
        self.max_init = max_init
        self.refit = refit
        self.reporter = reporter if reporter is not None else ReportingPolicy()
        self.state = RefitState.ATTEMPTING
        self.history = []

    def _transition(self, soln, n_init):
        if soln.convergence == 0:
            return RefitState.CONVERGED
        if not self.refit or n_init + 1 > self.max_init:
            return RefitState.EXHAUSTED
        return RefitState.ATTEMPTING

    def run(self):
        """Run attempts until CONVERGED or EXHAUSTED; returns the last Solution."""
        n_init = self.n_init
        soln = self.attempt(n_init)
        self.history.append(soln)
        self.state = self._transition(soln, n_init)

        while self.state is RefitState.ATTEMPTING:
            n_init += 1
            self.reporter.message(f"Refitting with n_init = {n_init} ...")
            soln = self.attempt(n_init)
            self.history.append(soln)
            self.state = self._transition(soln, n_init)

        if self.state is RefitState.EXHAUSTED:
            logger.debug("Optimization exhausted after %d attempt(s)", len(self.history))
        return soln


# ========================================================================================================================
# Results
# ========================================================================================================================

def check_results(soln):
    if soln.convergence != 0:
        raise ConvergenceError(
            f"Optimization did not converge (convergence code {soln.convergence}, n_init = {soln.n_init}). "
            "Try a larger max_init."
        )


def c_optimized_traits(pars, traits, soln):
    """Write optimized traits back into `pars`, as `carbon_balance` does."""
    trait_values = {}
    if 'g_sc' in traits:
        trait_values['g_sc'] = soln.traits['g_sc']
    if 'leafsize' in traits:
        trait_values['leafsize'] = soln.traits['leafsize']
    if 'sr' in traits:
        trait_values['logit_sr'] = soln.traits['logit_sr']
    return update_traits(pars, trait_values)


def assemble_results(upars, traits, soln, set_units=True):
    """
    Recompute leaf temperature, assimilation and energy fluxes at the
    optimized traits.

    Parameters
    ----------
    upars : dict
        Unitless merged parameters used for the optimization.
    traits : sequence of str
        Optimized traits, a subset of ('g_sc', 'leafsize', 'sr').
    soln : Solution
    set_units : bool, optional
        Attach canonical units as ``DataFrame.attrs['units']``. Columns always
        hold plain floats in those units, never pint quantities.

    Returns
    -------
    pandas.DataFrame
        One row, columns sorted by name, constants and bake parameters removed.

    Raises
    ------
    ConvergenceError
        If `soln` did not converge.
    InternalConsistencyError
        If leaf temperature cannot be solved at the optimized traits, or the
        energy balance does not close at it.
    """
    check_results(soln)

    pars = dict(upars)
    pars['carbon_balance'] = -soln.value
    pars['convergence'] = soln.convergence

    pars = c_optimized_traits(pars, traits, soln)
    pars['S_sw'] = PPFD_to_shortwave(pars['PPFD'], pars['E_q'], pars['f_par'])
    if 'g_sc' not in traits:
        pars['g_sw'] = gc2gw(pars['g_sc'], pars['D_c0'], pars['D_w0'])
    pars['g_uw'] = gc2gw(pars['g_uc'], pars['D_c0'], pars['D_w0'])
    if 'sr' not in traits:
        pars['logit_sr'] = float(sr_to_logit(pars['k_sc']))

    # Leaf temperature
    tleaf = find_tleaf(pars)
    if tleaf.convergence != 0:
        raise InternalConsistencyError(
            "Leaf temperature could not be solved at the optimized traits"
        )
    pars['T_leaf'] = tleaf.root
    eb = energy_balance(pars['T_leaf'], pars, components=True)
    if not is_closed(eb['energy_balance']):
        raise InternalConsistencyError(
            f"Energy balance does not close at T_leaf = {pars['T_leaf']} K "
            f"(residual {eb['energy_balance']} W/m²)"
        )

    # Assimilation
    baked = bake(pars, pars['T_leaf'])
    ph = find_A({**pars, **baked})
    pars['A'] = ph['A']
    pars['C_chl'] = ph['C_chl']
    pars['g_tc'] = ph['g_tc']

    pars.update(eb['components'])
    pars.update({name: value for name, value in baked.items() if name not in pars})

    drop = set(parameter_names('constants')) | set(parameter_names('bake'))
    keep = sorted(name for name in pars if name not in drop)

    df = pd.DataFrame([{name: float(pars[name]) for name in keep}])
    if set_units:
        df.attrs['units'] = {name: parameter_unit(name) for name in keep}
    return df


# ========================================================================================================================
# Argument checks
# ========================================================================================================================

def _check_flag(x, name):
    if not isinstance(x, (bool, np.bool_)):
        raise TypeError(f"{name} must be a single logical flag, not {x!r}")


def _check_count(x, name, lower):
    if (isinstance(x, (bool, np.bool_)) or not isinstance(x, numbers.Real)
            or not np.isfinite(x) or float(x) != int(x)):
        raise TypeError(f"{name} must be a single integer, not {x!r}")
    if x < lower:
        raise ValueError(f"{name} must be >= {lower}, not {x}")


def check_traits(traits):
    if isinstance(traits, str):
        traits = [traits]
    if not all(isinstance(trait, str) for trait in traits):
        raise TypeError("traits must be character strings")
    if not 1 <= len(traits) <= 3:
        raise ValueError(f"Between 1 and 3 traits must be given, not {len(traits)}")
    if len(set(traits)) != len(traits):
        raise ValueError("traits must be unique")


def match_traits(traits):
    """
    Match trait names, allowing unique abbreviations, against ('g_sc', 'leafsize', 'sr').

    Returns a sorted tuple of full names.
    """
    if isinstance(traits, str):
        traits = [traits]
    matched = []
    for trait in traits:
        hits = [name for name in TRAITS if name == trait]
        if not hits and trait:
            hits = [name for name in TRAITS if name.startswith(trait)]
        if len(hits) != 1:
            raise ValueError(f"'traits' should be one of {', '.join(TRAITS)}, not '{trait}'")
        matched.append(hits[0])
    if not matched:
        raise ValueError("At least one trait must be optimized")
    return tuple(sorted(set(matched)))


def check_carbon_costs(carbon_costs, quiet=False):
    """
    Carbon costs must be a mapping with nonnegative numbers for 'H2O' and 'SR'.
    Other entries are ignored, with a warning unless `quiet`.
    """
    if not isinstance(carbon_costs, Mapping):
        raise TypeError(f"carbon_costs must be a mapping, not {type(carbon_costs).__name__}")
    missing = [name for name in CARBON_COSTS if name not in carbon_costs]
    if missing:
        raise ValueError(f"carbon_costs must contain {', '.join(missing)}")
    for name in CARBON_COSTS:
        cost = carbon_costs[name]
        if isinstance(cost, bool) or not isinstance(cost, numbers.Real) or not np.isfinite(cost) or cost < 0:
            raise ValueError(f"carbon_costs['{name}'] must be a nonnegative number, not {cost!r}")
    ignored = [name for name in carbon_costs if name not in CARBON_COSTS]
    if ignored and not quiet:
        warnings.warn(f"Carbon costs {', '.join(map(str, ignored))} are not supported and will be ignored")


# ========================================================================================================================
# Entry point
# ========================================================================================================================

def optimize_leaf(traits, carbon_costs, bake_par, constants, enviro_par, leaf_par,
                  set_units=True, n_init=1, check=True, quiet=False, refit=True, max_init=3):
    """
    Optimize leaf traits under a single set of environmental conditions.

    Traits are chosen to maximize net carbon gain: photosynthesis minus the
    carbon cost of transpired water and of stomata on the upper surface.
    Leaf temperature comes from the leaf energy balance and photosynthesis
    from a C3 model baked to leaf temperature.

    Parameters
    ----------
    traits : str or sequence of str
        Trait(s) to optimize: 'g_sc' (stomatal conductance), 'leafsize' (leaf
        characteristic dimension) and/or 'sr' (logit stomatal ratio). Unique
        abbreviations are accepted.
    carbon_costs : dict
        Costs of resources in terms of carbon, e.g. {'H2O': 0.001, 'SR': 0}.
        'H2O' is in mol C / mol H2O; 'SR' is the cost per unit upper-surface
        stomatal conductance.
    bake_par : BakePar
        Temperature response parameters, see `make_bakepar`.
    constants : Constants
        Physical constants, see `make_constants`.
    enviro_par : EnviroPar
        Environmental parameters, see `make_enviropar`.
    leaf_par : LeafPar
        Leaf parameters, see `make_leafpar`.
    set_units : bool, optional
        Convert all parameters to canonical units before optimizing. Faster
        when False, but then inputs must already be plain numbers in canonical
        units, otherwise results are wrong without any warning.
    n_init : int, optional
        Initial values per trait. With several traits these are crossed, so
        n_init = 3 gives 3, 9 or 27 starts for 1, 2 or 3 traits.
    check : bool, optional
        Check arguments before optimizing.
    quiet : bool, optional
        Suppress progress messages.
    refit : bool, optional
        If optimization fails to converge, retry with n_init increased by 1
        until it converges or n_init exceeds `max_init`.
    max_init : int, optional
        Largest n_init to try when refitting.

    Returns
    -------
    pandas.DataFrame
        One row with the leaf and environmental inputs, baked biochemical
        parameters at T_leaf, and outputs: A, C_chl, g_tc, g_sw, g_uw, T_leaf,
        energy fluxes (R_abs, S_r, H, L, E), carbon_balance and convergence.
        With set_units, canonical units are in ``attrs['units']``.

    Raises
    ------
    ConvergenceError
        If optimization did not converge after all permitted refits.

    Example
    -------
    from leafoptimizer import make_bakepar, make_constants, make_enviropar, make_leafpar, optimize_leaf
    bp = make_bakepar()
    cs = make_constants()
    ep = make_enviropar()
    lp = make_leafpar()
    optimize_leaf('g_sc', {'H2O': 0.001, 'SR': 0}, bp, cs, ep, lp, n_init=1)
    """
    _check_flag(check, 'check')

    if check:
        _check_flag(set_units, 'set_units')
        _check_flag(quiet, 'quiet')
        _check_count(n_init, 'n_init', lower=1)
        _check_flag(refit, 'refit')
        _check_count(max_init, 'max_init', lower=n_init)
        check_traits(traits)
        check_carbon_costs(carbon_costs, quiet)
        for group, cls, name in ((bake_par, BakePar, 'bake_par'), (constants, Constants, 'constants'),
                                 (enviro_par, EnviroPar, 'enviro_par'), (leaf_par, LeafPar, 'leaf_par')):
            if not isinstance(group, cls):
                raise TypeError(f"{name} must be of class {cls.__name__}, not {type(group).__name__}")

    traits = match_traits(traits)
    n_init = int(n_init)
    max_init = int(max_init)
    reporter = ReportingPolicy(quiet=bool(quiet))

    if set_units:
        bake_par = BakePar(bake_par).with_units()
        constants = Constants(constants).with_units()
        enviro_par = EnviroPar(enviro_par).with_units()
        leaf_par = LeafPar(leaf_par).with_units()

    pars = merge_parameters(bake_par, constants, enviro_par, leaf_par)
    upars = drop_units(pars)

    flags = {
        'find_gsc': 'g_sc' in traits,
        'find_leafsize': 'leafsize' in traits,
        'find_sr': 'sr' in traits,
    }

    def _attempt(n):
        return find_optimum(carbon_costs=carbon_costs, upars=upars, n_init=n, reporter=reporter, **flags)

    controller = RefitController(_attempt, n_init=n_init, max_init=max_init, refit=refit, reporter=reporter)
    soln = controller.run()

    return assemble_results(upars, traits, soln, set_units=set_units)
