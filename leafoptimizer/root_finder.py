import logging
from dataclasses import dataclass

import numpy as np
from scipy.optimize import brentq

from leafoptimizer.ecophysiology import FvCB, A_supply, calc_total_co2_conductance
from leafoptimizer.energy_balance import EnergyBalance

logger = logging.getLogger(__name__)


@dataclass
class RootSolution:
    """Result of a bracketed root search; convergence 0 means a root was found."""
    root: float
    value: float
    convergence: int

    @classmethod
    def failed(cls):
        return cls(root=np.nan, value=np.nan, convergence=1)


def find_root(f, lower, upper, args=()):
    """
    Find x in [lower, upper] with f(x) = 0 by Brent's method.

    Never raises for numerical trouble: if the bracket does not contain a sign
    change, f is not finite at the bracket ends, or the iteration does not
    converge, a failed `RootSolution` (NaN root and residual, convergence 1)
    is returned so the caller can decide what to do.

    Parameters
    ----------
    f : callable
        f(x, *args) -> float
    lower, upper : float
        Bracket.
    args : tuple, optional
        Extra arguments passed to f.

    Returns
    -------
    RootSolution
    """
    try:
        f_lower = f(lower, *args)
        f_upper = f(upper, *args)
        if not (np.isfinite(f_lower) and np.isfinite(f_upper)):
            logger.debug("Non-finite function value at bracket [%s, %s]", lower, upper)
            return RootSolution.failed()
        root, result = brentq(f, lower, upper, args=args, full_output=True, disp=False)
        value = f(root, *args)
    except (ValueError, RuntimeError, FloatingPointError, ZeroDivisionError) as e:
        logger.debug("Root finding failed on [%s, %s]: %s", lower, upper, e)
        return RootSolution.failed()

    if not result.converged or not np.isfinite(value):
        logger.debug("Root finding did not converge on [%s, %s]: %s", lower, upper, result.flag)
        return RootSolution.failed()
    return RootSolution(root=float(root), value=float(value), convergence=0)


def find_tleaf(pars):
    """
    Leaf temperature [K] at which the energy balance closes, searched within
    30 K of air temperature. `pars` must arrive unitless.
    """
    try:
        eb = EnergyBalance(pars)
    except (ValueError, ZeroDivisionError) as e:
        logger.debug("Energy balance could not be set up: %s", e)
        return RootSolution.failed()
    return find_root(eb.residual, pars['T_air'] - 30.0, pars['T_air'] + 30.0)


def find_A(pars):
    """
    Chloroplastic CO2 partial pressure where CO2 supply meets photosynthetic
    demand, and the assimilation rate there.

    `pars` must arrive unitless and baked to leaf temperature.

    Returns
    -------
    dict
        'C_chl' (Pa), 'value' (supply - demand at C_chl), 'convergence',
        'A' (µmol m⁻² s⁻¹) and 'g_tc' (µmol m⁻² s⁻¹ Pa⁻¹). C_chl, value and A
        are NaN on failure.
    """
    try:
        g_tc = calc_total_co2_conductance(pars)
    except (ValueError, ZeroDivisionError) as e:
        logger.debug("Total conductance to CO2 could not be computed: %s", e)
        return {'C_chl': np.nan, 'value': np.nan, 'convergence': 1, 'A': np.nan, 'g_tc': np.nan}
    fvcb = FvCB(pars)

    def _supply_minus_demand(C_chl):
        return A_supply(C_chl, pars, g_tc=g_tc) - fvcb.A_demand(C_chl)

    fit = find_root(_supply_minus_demand, 0.1, max(10.0, pars['C_air']))
    A = A_supply(fit.root, pars, g_tc=g_tc) if fit.convergence == 0 else np.nan
    return {
        'C_chl': fit.root,
        'value': fit.value,
        'convergence': fit.convergence,
        'A': A,
        'g_tc': g_tc,
    }
