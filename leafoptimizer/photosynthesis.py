import numpy as np

from leafoptimizer.ecophysiology import bake
from leafoptimizer.root_finder import find_A, find_tleaf
from leafoptimizer.utilities import PPFD_to_shortwave, gc2gw, sr_to_logit


def prepare_for_tleaf(pars):
    """
    Add the quantities the energy balance needs but leaf parameters do not
    carry: conductances to water vapour, the logit stomatal ratio and
    incident shortwave radiation. Returns a new dict.
    """
    pars = dict(pars)
    pars['g_sw'] = gc2gw(pars['g_sc'], pars['D_c0'], pars['D_w0'])
    pars['g_uw'] = gc2gw(pars['g_uc'], pars['D_c0'], pars['D_w0'])
    pars['logit_sr'] = sr_to_logit(pars['k_sc'])
    pars['S_sw'] = PPFD_to_shortwave(pars['PPFD'], pars['E_q'], pars['f_par'])
    return pars


def photo(pars):
    """
    C3 photosynthesis coupled to the leaf energy balance.

    Leaf temperature is solved first; biochemical parameters are then baked to
    that temperature and the chloroplastic CO2 partial pressure at which supply
    meets demand is found.

    Parameters
    ----------
    pars : dict
        Unitless leaf, environmental, constant and bake parameters.

    Returns
    -------
    dict
        'A', 'C_chl', 'g_tc', 'value', 'convergence' from `find_A`, plus
        'T_leaf', 'g_sw', 'g_uw' and 'logit_sr'. If leaf temperature cannot be
        found, A, C_chl and T_leaf are NaN and convergence is 1.
    """
    pars = prepare_for_tleaf(pars)
    tleaf = find_tleaf(pars)

    out = {
        'T_leaf': tleaf.root,
        'g_sw': pars['g_sw'],
        'g_uw': pars['g_uw'],
        'logit_sr': pars['logit_sr'],
    }
    if tleaf.convergence != 0:
        out.update({'A': np.nan, 'C_chl': np.nan, 'g_tc': np.nan, 'value': np.nan, 'convergence': 1})
        return out

    pars['T_leaf'] = tleaf.root
    pars.update(bake(pars, tleaf.root))
    out.update(find_A(pars))
    return out
