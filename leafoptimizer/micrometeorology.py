import numpy as np

from leafoptimizer.utilities import gc2gw, gw2gc

KELVIN = 273.15
P_REF = 101.3246  # kPa
MOLAR_MASS_H2O = 0.01801528  # kg mol⁻¹


def calc_saturation_vapour_pressure(T_K):
    """
    Saturation vapour pressure [Pa] over water at temperature T_K [K].

    Magnus-type form, e_s = 610.7 × 10^(7.5 T / (237.3 + T)) with T in °C.
    """
    T = T_K - KELVIN
    return 610.7 * 10.0 ** (7.5 * T / (237.3 + T))


def calc_latent_heat_vaporization(T_K):
    """
    Molar latent heat of vaporization of water [J mol⁻¹] at temperature T_K [K].

    Example
    -------
    calc_latent_heat_vaporization(298.15)
    # 43992.9
    """
    lambda_v = (2.501 - 0.002361 * (T_K - KELVIN)) * 1e6   # J kg⁻¹
    return lambda_v * MOLAR_MASS_H2O


def calc_diffusivity(D_0, T_K, P, eT):
    """
    Diffusion coefficient [m² s⁻¹] at temperature T_K [K] and pressure P [kPa],
    scaled from its value D_0 at 0 °C and standard pressure.
    """
    return D_0 * (T_K / KELVIN) ** eT * (P_REF / P)


def ms_to_molar_conductance(g, T_K, R):
    """Convert a conductance in m s⁻¹ to µmol m⁻² s⁻¹ Pa⁻¹."""
    return g * 1e6 / (R * T_K)


def calc_boundary_layer_conductance(wind, leafsize, T_air, P, D_h0, D_m0, D_w0, eT):
    """
    Boundary layer conductances of one leaf surface under forced convection.

    Parameters
    ----------
    wind : float
        Wind speed [m s⁻¹]. Must be > 0.
    leafsize : float
        Leaf characteristic dimension [m]. Must be > 0.
    T_air : float
        Air temperature [K].
    P : float
        Atmospheric pressure [kPa].
    D_h0, D_m0, D_w0 : float
        Diffusivities of heat, momentum and water vapour at 0 °C [m² s⁻¹].
    eT : float
        Exponent of the temperature dependence of diffusion.

    Returns
    -------
    dict
        'g_bh' : conductance to heat [m s⁻¹]
        'g_bw' : conductance to water vapour [m s⁻¹]
        'Re'   : Reynolds number
        'Nu'   : Nusselt number
        'Sh'   : Sherwood number

    Notes
    -----
    Laminar flat-plate correlations:
        Nu = 0.664 Re^0.5 Pr^(1/3),  Sh = 0.664 Re^0.5 Sc^(1/3),
        g_bh = D_h Nu / d,  g_bw = D_w Sh / d
    with Re = u d / ν, Pr = ν / D_h, Sc = ν / D_w and ν = D_m.

    Example
    -------
    bl = calc_boundary_layer_conductance(
        wind=2.0, leafsize=0.1, T_air=298.15, P=101.3246,
        D_h0=1.9e-5, D_m0=13.3e-6, D_w0=21.2e-6, eT=1.75
    )
    print(f"g_bw: {bl['g_bw']:.4f} m/s")
    """
    if wind <= 0:
        raise ValueError("Wind speed must be > 0 m/s for boundary layer conductance.")
    if leafsize <= 0:
        raise ValueError("Leaf characteristic dimension must be > 0 m.")

    D_h = calc_diffusivity(D_h0, T_air, P, eT)
    D_m = calc_diffusivity(D_m0, T_air, P, eT)
    D_w = calc_diffusivity(D_w0, T_air, P, eT)

    Re = wind * leafsize / D_m
    Nu = 0.664 * np.sqrt(Re) * (D_m / D_h) ** (1.0 / 3.0)
    Sh = 0.664 * np.sqrt(Re) * (D_m / D_w) ** (1.0 / 3.0)

    return {
        'g_bh': D_h * Nu / leafsize,
        'g_bw': D_w * Sh / leafsize,
        'Re': Re,
        'Nu': Nu,
        'Sh': Sh,
    }


def split_conductance(g, k):
    """Partition a total conductance between the upper (k / (1 + k)) and lower (1 / (1 + k)) surfaces."""
    return g * k / (1.0 + k), g / (1.0 + k)


def calc_leaf_boundary_layer(pars):
    """
    Boundary layer conductances of one leaf surface in molar units.

    Returns a dict with 'g_bh' [mol m⁻² s⁻¹], 'g_bw' and 'g_bc' [µmol m⁻² s⁻¹ Pa⁻¹].
    """
    bl = calc_boundary_layer_conductance(
        pars['wind'], pars['leafsize'], pars['T_air'], pars['P'],
        pars['D_h0'], pars['D_m0'], pars['D_w0'], pars['eT']
    )
    g_bw = ms_to_molar_conductance(bl['g_bw'], pars['T_air'], pars['R'])
    return {
        'g_bh': ms_to_molar_conductance(bl['g_bh'], pars['T_air'], pars['R']) * pars['P'] * 1e-3,
        'g_bw': g_bw,
        'g_bc': gw2gc(g_bw, pars['D_c0'], pars['D_w0'], boundary_layer=True),
    }


def calc_total_water_conductance(pars, g_bw=None):
    """
    Total leaf conductance to water vapour [µmol m⁻² s⁻¹ Pa⁻¹], summing the
    upper and lower surfaces, each stomata + cuticle in series with its
    boundary layer.
    """
    if g_bw is None:
        g_bw = calc_leaf_boundary_layer(pars)['g_bw']
    g_sw = pars['g_sw'] if 'g_sw' in pars else gc2gw(pars['g_sc'], pars['D_c0'], pars['D_w0'])
    g_uw = pars['g_uw'] if 'g_uw' in pars else gc2gw(pars['g_uc'], pars['D_c0'], pars['D_w0'])
    g_sw_upper, g_sw_lower = split_conductance(g_sw, pars['k_sc'])
    g_uw_upper, g_uw_lower = split_conductance(g_uw, pars['k_uc'])

    g_tw = 0.0
    for g_surface in (g_sw_upper + g_uw_upper, g_sw_lower + g_uw_lower):
        g_tw += 1.0 / (1.0 / g_surface + 1.0 / g_bw)
    return g_tw
