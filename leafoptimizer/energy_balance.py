import numpy as np

from leafoptimizer.micrometeorology import (
    calc_latent_heat_vaporization,
    calc_leaf_boundary_layer,
    calc_saturation_vapour_pressure,
    calc_total_water_conductance,
)
from leafoptimizer.utilities import PPFD_to_shortwave


class EnergyBalance:
    """
    Leaf energy fluxes and the energy balance residual as a function of leaf
    temperature.

    This class provides methods to calculate:
        - Absorbed shortwave and longwave radiation (R_abs)
        - Re-emitted longwave radiation (S_r)
        - Sensible heat flux (H)
        - Transpiration (E) and latent heat flux (L)
        - The residual R_abs - (S_r + H + L), zero at steady state

    All fluxes are per unit one-sided leaf area; both leaf surfaces exchange
    radiation, heat and water vapour.

    Parameters
    ----------
    pars : dict
        Unitless leaf, environmental and constant parameters in canonical
        units (see `leafoptimizer.parameters.PARAMETER_UNITS`). Uses
        abs_l, abs_s, c_p, g_sw (or g_sc), g_uw (or g_uc), k_sc, k_uc,
        leafsize, P, PPFD, E_q, f_par, r, R, RH, s, T_air, wind and the
        diffusion constants. If 'S_sw' is present it is used as given.

    Attributes
    ----------
    g_bh : float
        Boundary layer conductance to heat of one surface [mol m⁻² s⁻¹].
    g_tw : float
        Total leaf conductance to water vapour [µmol m⁻² s⁻¹ Pa⁻¹].
    S_sw : float
        Incident shortwave radiation [W m⁻²].

    Example
    -------
    from leafoptimizer import make_leafpar, make_enviropar, make_constants, merge_parameters
    pars = merge_parameters(make_constants(), make_enviropar(), make_leafpar())
    eb = EnergyBalance(pars)
    eb.residual(300.0)
    eb.components(300.0)['H']
    """
    def __init__(self, pars) -> None:
        self.pars = pars
        bl = calc_leaf_boundary_layer(pars)
        self.g_bh = bl['g_bh']
        self.g_tw = calc_total_water_conductance(pars, g_bw=bl['g_bw'])
        if 'S_sw' in pars:
            self.S_sw = pars['S_sw']
        else:
            self.S_sw = PPFD_to_shortwave(pars['PPFD'], pars['E_q'], pars['f_par'])

    def radiation_absorbed(self):
        """Absorbed shortwave (direct + reflected) and longwave radiation [W m⁻²]."""
        p = self.pars
        shortwave = p['abs_s'] * (1.0 + p['r']) * self.S_sw
        longwave = 2.0 * p['abs_l'] * p['s'] * p['T_air'] ** 4
        return shortwave + longwave

    def radiation_emitted(self, T_leaf):
        """Longwave radiation emitted from both surfaces [W m⁻²]."""
        p = self.pars
        return 2.0 * p['abs_l'] * p['s'] * T_leaf ** 4

    def sensible_heat_flux(self, T_leaf):
        """Sensible heat flux from both surfaces [W m⁻²]."""
        p = self.pars
        return p['c_p'] * 2.0 * self.g_bh * (T_leaf - p['T_air'])

    def transpiration(self, T_leaf):
        """
        Transpiration rate E [mol m⁻² s⁻¹].

        E = g_tw × 1e-6 × (e_s(T_leaf) - RH × e_s(T_air))
        """
        p = self.pars
        p_leaf = calc_saturation_vapour_pressure(T_leaf)
        p_air = p['RH'] * calc_saturation_vapour_pressure(p['T_air'])
        return self.g_tw * 1e-6 * (p_leaf - p_air)

    def latent_heat_flux(self, T_leaf):
        """Latent heat flux L [W m⁻²], with E and the molar latent heat of vaporization."""
        E = self.transpiration(T_leaf)
        lambda_v = calc_latent_heat_vaporization(T_leaf)
        return {'L': lambda_v * E, 'E': E, 'lambda_v': lambda_v}

    def components(self, T_leaf):
        R_abs = self.radiation_absorbed()
        S_r = self.radiation_emitted(T_leaf)
        H = self.sensible_heat_flux(T_leaf)
        latent = self.latent_heat_flux(T_leaf)
        return {
            'R_abs': R_abs,
            'S_r': S_r,
            'H': H,
            'L': latent['L'],
            'E': latent['E'],
        }

    def residual(self, T_leaf):
        """
        Residual energy (W m⁻²):
            f(T_leaf) = R_abs - (S_r + H + L)
        where positive means net surplus of energy (leaf should warm up).
        """
        c = self.components(T_leaf)
        return c['R_abs'] - (c['S_r'] + c['H'] + c['L'])


def energy_balance(T_leaf, pars, components=False):
    """
    Energy balance residual at leaf temperature `T_leaf` [K].

    If `components` is True, returns a dict with 'energy_balance' and
    'components' (R_abs, S_r, H, L, E).
    """
    eb = EnergyBalance(pars)
    residual = eb.residual(T_leaf)
    if components:
        return {'energy_balance': residual, 'components': eb.components(T_leaf)}
    return residual


def E(T_leaf, pars):
    """Transpiration rate [mol m⁻² s⁻¹] at leaf temperature `T_leaf` [K]."""
    return EnergyBalance(pars).transpiration(T_leaf)


def is_closed(residual, digits=1):
    """True if the energy balance residual rounds to zero."""
    return bool(np.isfinite(residual)) and round(float(residual), digits) == 0
