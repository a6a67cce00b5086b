import numpy as np

from leafoptimizer.micrometeorology import calc_leaf_boundary_layer, split_conductance

T_REF = 298.15  # K

# ========================================================================================================================
# Temperature response ("baking")
# ========================================================================================================================

def calc_arrhenius(k25, Ea, T_leaf, R):
    """
    Arrhenius temperature response.

    k25   : value at 25 °C
    Ea    : activation energy (J mol⁻¹)
    T_leaf: leaf temperature (K)
    R     : ideal gas constant (J mol⁻¹ K⁻¹)
    """
    return k25 * np.exp(Ea / R * (1.0 / T_REF - 1.0 / T_leaf))


def calc_peaked_arrhenius(k25, Ea, Ds, Ed, T_leaf, R):
    """
    Arrhenius response with high-temperature deactivation (Ds: entropy term,
    J mol⁻¹ K⁻¹; Ed: deactivation energy, J mol⁻¹). Equals k25 at 25 °C.
    """
    numerator = 1.0 + np.exp((Ds * T_REF - Ed) / (R * T_REF))
    denominator = 1.0 + np.exp((Ds * T_leaf - Ed) / (R * T_leaf))
    return calc_arrhenius(k25, Ea, T_leaf, R) * numerator / denominator


def bake(pars, T_leaf=None):
    """
    Temperature-adjust the biochemical parameters to leaf temperature.

    Parameters
    ----------
    pars : dict
        Unitless parameters containing the 25 °C values (g_mc25, gamma_star25,
        J_max25, K_C25, K_O25, R_d25, V_cmax25, V_tpu25), the bake parameters
        and R.
    T_leaf : float, optional
        Leaf temperature (K). Defaults to pars['T_leaf'].

    Returns
    -------
    dict
        g_mc, gamma_star, J_max, K_C, K_O, R_d, V_cmax, V_tpu at T_leaf.
    """
    if T_leaf is None:
        T_leaf = pars['T_leaf']
    R = pars['R']

    baked = {
        'gamma_star': calc_arrhenius(pars['gamma_star25'], pars['Ea_gammastar'], T_leaf, R),
        'K_C': calc_arrhenius(pars['K_C25'], pars['Ea_KC'], T_leaf, R),
        'K_O': calc_arrhenius(pars['K_O25'], pars['Ea_KO'], T_leaf, R),
        'R_d': calc_arrhenius(pars['R_d25'], pars['Ea_Rd'], T_leaf, R),
        'V_cmax': calc_arrhenius(pars['V_cmax25'], pars['Ea_Vcmax'], T_leaf, R),
        'V_tpu': calc_arrhenius(pars['V_tpu25'], pars['Ea_Vtpu'], T_leaf, R),
        'g_mc': calc_peaked_arrhenius(pars['g_mc25'], pars['Ea_gmc'], pars['Ds_gmc'], pars['Ed_gmc'], T_leaf, R),
        'J_max': calc_peaked_arrhenius(pars['J_max25'], pars['Ea_Jmax'], pars['Ds_Jmax'], pars['Ed_Jmax'], T_leaf, R),
    }
    return {name: float(value) for name, value in baked.items()}


# ========================================================================================================================
# Module FvCB
# ========================================================================================================================

class FvCB:
    """
    Farquhar-von Caemmerer-Berry C3 photosynthetic demand as a function of
    chloroplastic CO2 partial pressure.

    Parameters
    ----------
    pars : dict
        Baked parameters (V_cmax, J_max, V_tpu, R_d, K_C, K_O, gamma_star) plus
        O (kPa), PPFD (µmol m⁻² s⁻¹), phi_J and theta_J.

    Notes
    -----
    A_demand = (1 - Γ* / C_chl) × min(W_carbox, W_regen, W_tpu) - R_d
    """

    def __init__(self, pars):
        self.V_cmax = pars['V_cmax']
        self.J_max = pars['J_max']
        self.V_tpu = pars['V_tpu']
        self.R_d = pars['R_d']
        self.K_C = pars['K_C']
        self.K_O = pars['K_O']
        self.O = pars['O']
        self.gamma_star = pars['gamma_star']
        self.PPFD = pars['PPFD']
        self.phi_J = pars['phi_J']
        self.theta_J = pars['theta_J']

    # ------------------- Internal methods -------------------

    def _electron_transport(self):
        """Electron transport rate J (µmol m⁻² s⁻¹) using non-rectangular hyperbola."""
        I2 = self.PPFD * self.phi_J
        J = (I2 + self.J_max - np.sqrt((I2 + self.J_max)**2 - 4 * self.theta_J * I2 * self.J_max)) / (2 * self.theta_J)
        return J

    def _rubisco_rate(self, C_chl):
        """Rubisco-limited carboxylation (µmol m⁻² s⁻¹)."""
        K_m = self.K_C * (1 + self.O / self.K_O)
        return self.V_cmax * C_chl / (C_chl + K_m)

    def _regeneration_rate(self, C_chl):
        """RuBP regeneration-limited carboxylation (µmol m⁻² s⁻¹)."""
        return self._electron_transport() * C_chl / (4 * C_chl + 8 * self.gamma_star)

    def _tpu_rate(self, C_chl):
        """TPU-limited carboxylation (µmol m⁻² s⁻¹); unlimiting below Γ*."""
        C_chl = np.asarray(C_chl, dtype=float)
        with np.errstate(divide='ignore', invalid='ignore'):
            W_tpu = 3 * self.V_tpu * C_chl / (C_chl - self.gamma_star)
        return np.where(C_chl > self.gamma_star, W_tpu, np.inf)

    # ------------------- Public method -------------------

    def A_demand(self, C_chl):
        """
        Net photosynthetic demand for CO2 (µmol m⁻² s⁻¹).

        Parameters
        ----------
        C_chl : float or np.ndarray
            Chloroplastic CO2 partial pressure (Pa)
        """
        W = np.minimum(np.minimum(self._rubisco_rate(C_chl), self._regeneration_rate(C_chl)), self._tpu_rate(C_chl))
        A = (1 - self.gamma_star / C_chl) * W - self.R_d
        return A.item() if np.ndim(A) == 0 else A


# ========================================================================================================================
# CO2 supply
# ========================================================================================================================

def calc_total_co2_conductance(pars, g_bc=None):
    """
    Total conductance to CO2 [µmol m⁻² s⁻¹ Pa⁻¹] from the atmosphere to the
    chloroplast, summing upper and lower surfaces. Each surface has mesophyll,
    stomata + cuticle, and boundary layer conductances in series.

    `pars` must contain baked g_mc.
    """
    if g_bc is None:
        g_bc = calc_leaf_boundary_layer(pars)['g_bc']
    g_mc_upper, g_mc_lower = split_conductance(pars['g_mc'], pars['k_mc'])
    g_sc_upper, g_sc_lower = split_conductance(pars['g_sc'], pars['k_sc'])
    g_uc_upper, g_uc_lower = split_conductance(pars['g_uc'], pars['k_uc'])

    g_tc = 0.0
    for g_m, g_s in ((g_mc_upper, g_sc_upper + g_uc_upper), (g_mc_lower, g_sc_lower + g_uc_lower)):
        g_tc += 1.0 / (1.0 / g_m + 1.0 / g_s + 1.0 / g_bc)
    return g_tc


def A_supply(C_chl, pars, g_tc=None):
    """CO2 supply by diffusion, g_tc × (C_air - C_chl) [µmol m⁻² s⁻¹]."""
    if g_tc is None:
        g_tc = calc_total_co2_conductance(pars)
    return g_tc * (pars['C_air'] - C_chl)


def A_demand(C_chl, pars):
    """Photosynthetic demand for CO2 [µmol m⁻² s⁻¹]; see `FvCB`."""
    return FvCB(pars).A_demand(C_chl)
