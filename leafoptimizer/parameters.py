from collections.abc import Mapping

import pint

ureg = pint.UnitRegistry()
Q_ = ureg.Quantity

# ========================================================================================================================
# Parameter namespaces, defaults and canonical units
# ========================================================================================================================

# Values are given in their canonical unit (see PARAMETER_UNITS).
DEFAULT_LEAF_PAR = {
    'abs_l': 0.97,          # absorptivity of longwave radiation (-)
    'abs_s': 0.50,          # absorptivity of shortwave radiation (-)
    'g_mc25': 4.0,          # mesophyll conductance to CO2 at 25 °C (µmol m⁻² s⁻¹ Pa⁻¹)
    'g_sc': 4.0,            # stomatal conductance to CO2 (µmol m⁻² s⁻¹ Pa⁻¹)
    'g_uc': 0.1,            # cuticular conductance to CO2 (µmol m⁻² s⁻¹ Pa⁻¹)
    'gamma_star25': 3.743,  # chloroplastic CO2 compensation point at 25 °C (Pa)
    'J_max25': 200.0,       # potential electron transport at 25 °C (µmol m⁻² s⁻¹)
    'K_C25': 27.238,        # Michaelis constant for carboxylation at 25 °C (Pa)
    'K_O25': 16.582,        # Michaelis constant for oxygenation at 25 °C (kPa)
    'k_mc': 1.0,            # upper:lower ratio of g_mc (-)
    'k_sc': 1.0,            # upper:lower ratio of g_sc, the stomatal ratio (-)
    'k_uc': 1.0,            # upper:lower ratio of g_uc (-)
    'leafsize': 0.1,        # leaf characteristic dimension (m)
    'phi_J': 0.331,         # initial slope of the response of J to PPFD (-)
    'R_d25': 2.0,           # nonphotorespiratory CO2 release at 25 °C (µmol m⁻² s⁻¹)
    'theta_J': 0.825,       # curvature factor for light-response curve (-)
    'V_cmax25': 150.0,      # maximum rate of carboxylation at 25 °C (µmol m⁻² s⁻¹)
    'V_tpu25': 200.0,       # rate of triose phosphate utilisation at 25 °C (µmol m⁻² s⁻¹)
}

DEFAULT_ENVIRO_PAR = {
    'C_air': 41.0,          # atmospheric CO2 partial pressure (Pa)
    'E_q': 220.0,           # energy per mole quanta (kJ mol⁻¹)
    'f_par': 0.5,           # fraction of incoming shortwave radiation that is PAR (-)
    'O': 21.27565,          # atmospheric O2 partial pressure (kPa)
    'P': 101.3246,          # atmospheric pressure (kPa)
    'PPFD': 1500.0,         # photosynthetic photon flux density (µmol m⁻² s⁻¹)
    'r': 0.2,               # reflectance for shortwave irradiance (-)
    'RH': 0.5,              # relative humidity (-)
    'T_air': 298.15,        # air temperature (K)
    'wind': 2.0,            # wind speed (m s⁻¹)
}

DEFAULT_CONSTANTS = {
    'c_p': 29.3,            # heat capacity of air (J mol⁻¹ K⁻¹)
    'D_c0': 12.9e-6,        # diffusion coefficient for CO2 in air at 0 °C (m² s⁻¹)
    'D_h0': 1.9e-5,         # diffusion coefficient for heat in air at 0 °C (m² s⁻¹)
    'D_m0': 13.3e-6,        # diffusion coefficient for momentum in air at 0 °C (m² s⁻¹)
    'D_w0': 21.2e-6,        # diffusion coefficient for water vapour in air at 0 °C (m² s⁻¹)
    'eT': 1.75,             # exponent for temperature dependence of diffusion (-)
    'R': 8.3144598,         # ideal gas constant (J mol⁻¹ K⁻¹)
    's': 5.67e-8,           # Stefan-Boltzmann constant (W m⁻² K⁻⁴)
}

DEFAULT_BAKE_PAR = {
    'Ds_gmc': 1400.0,       # entropy term for g_mc (J mol⁻¹ K⁻¹)
    'Ds_Jmax': 388.0,       # entropy term for J_max (J mol⁻¹ K⁻¹)
    'Ea_gammastar': 24460.0,
    'Ea_gmc': 49600.0,
    'Ea_Jmax': 43900.0,
    'Ea_KC': 80990.0,
    'Ea_KO': 23720.0,
    'Ea_Rd': 46390.0,
    'Ea_Vcmax': 65330.0,
    'Ea_Vtpu': 53100.0,
    'Ed_gmc': 437400.0,     # deactivation energy for g_mc (J mol⁻¹)
    'Ed_Jmax': 121000.0,    # deactivation energy for J_max (J mol⁻¹)
}

CONDUCTANCE_UNIT = 'umol / m ** 2 / s / Pa'
FLUX_UNIT = 'umol / m ** 2 / s'

PARAMETER_UNITS = {
    # leaf
    'abs_l': 'dimensionless', 'abs_s': 'dimensionless',
    'g_mc25': CONDUCTANCE_UNIT, 'g_sc': CONDUCTANCE_UNIT, 'g_uc': CONDUCTANCE_UNIT,
    'gamma_star25': 'Pa', 'J_max25': FLUX_UNIT, 'K_C25': 'Pa', 'K_O25': 'kPa',
    'k_mc': 'dimensionless', 'k_sc': 'dimensionless', 'k_uc': 'dimensionless',
    'leafsize': 'm', 'phi_J': 'dimensionless', 'R_d25': FLUX_UNIT,
    'theta_J': 'dimensionless', 'V_cmax25': FLUX_UNIT, 'V_tpu25': FLUX_UNIT,
    # enviro
    'C_air': 'Pa', 'E_q': 'kJ / mol', 'f_par': 'dimensionless', 'O': 'kPa',
    'P': 'kPa', 'PPFD': FLUX_UNIT, 'r': 'dimensionless', 'RH': 'dimensionless',
    'T_air': 'K', 'wind': 'm / s',
    # constants
    'c_p': 'J / mol / K', 'D_c0': 'm ** 2 / s', 'D_h0': 'm ** 2 / s',
    'D_m0': 'm ** 2 / s', 'D_w0': 'm ** 2 / s', 'eT': 'dimensionless',
    'R': 'J / mol / K', 's': 'W / m ** 2 / K ** 4',
    # bake
    'Ds_gmc': 'J / mol / K', 'Ds_Jmax': 'J / mol / K',
    'Ea_gammastar': 'J / mol', 'Ea_gmc': 'J / mol', 'Ea_Jmax': 'J / mol',
    'Ea_KC': 'J / mol', 'Ea_KO': 'J / mol', 'Ea_Rd': 'J / mol',
    'Ea_Vcmax': 'J / mol', 'Ea_Vtpu': 'J / mol',
    'Ed_gmc': 'J / mol', 'Ed_Jmax': 'J / mol',
}

# Quantities computed while optimizing or assembling results
DERIVED_UNITS = {
    'A': FLUX_UNIT, 'C_chl': 'Pa', 'carbon_balance': FLUX_UNIT,
    'convergence': 'dimensionless', 'E': 'mol / m ** 2 / s',
    'g_mc': CONDUCTANCE_UNIT, 'g_sw': CONDUCTANCE_UNIT, 'g_tc': CONDUCTANCE_UNIT,
    'g_uw': CONDUCTANCE_UNIT, 'gamma_star': 'Pa', 'H': 'W / m ** 2',
    'J_max': FLUX_UNIT, 'K_C': 'Pa', 'K_O': 'kPa', 'L': 'W / m ** 2',
    'logit_sr': 'dimensionless', 'R_abs': 'W / m ** 2', 'R_d': FLUX_UNIT,
    'S_r': 'W / m ** 2', 'S_sw': 'W / m ** 2', 'T_leaf': 'K',
    'V_cmax': FLUX_UNIT, 'V_tpu': FLUX_UNIT,
}

_NAMESPACES = {
    'leaf': tuple(DEFAULT_LEAF_PAR),
    'enviro': tuple(DEFAULT_ENVIRO_PAR),
    'constants': tuple(DEFAULT_CONSTANTS),
    'bake': tuple(DEFAULT_BAKE_PAR),
}


def parameter_names(which):
    """
    Names of the parameters in one namespace.

    Parameters
    ----------
    which : str
        'leaf', 'enviro', 'constants' or 'bake'. Unique abbreviations are
        accepted, e.g. 'const'.

    Returns
    -------
    tuple of str
    """
    if which in _NAMESPACES:
        return _NAMESPACES[which]
    matches = [name for name in _NAMESPACES if name.startswith(which)] if which else []
    if len(matches) != 1:
        raise ValueError(f"'which' should be one of {', '.join(_NAMESPACES)}, not '{which}'")
    return _NAMESPACES[matches[0]]


def parameter_unit(name):
    """Canonical unit string of an input or derived parameter."""
    if name in PARAMETER_UNITS:
        return PARAMETER_UNITS[name]
    return DERIVED_UNITS[name]


# ========================================================================================================================
# Units
# ========================================================================================================================

def set_parameter_units(pars):
    """
    Express every parameter as a `pint.Quantity` in its canonical unit.

    Plain numbers are taken to be in the canonical unit already. Quantities are
    converted, so a temperature may be supplied as ``Q_(25, 'degC')``.

    Raises
    ------
    pint.DimensionalityError
        If a quantity is not convertible to the canonical unit of its name.

    Example
    -------
    pars = set_parameter_units({'T_air': Q_(25, 'degC'), 'leafsize': Q_(5, 'cm')})
    pars['T_air']     # <Quantity(298.15, 'kelvin')>
    pars['leafsize']  # <Quantity(0.05, 'meter')>
    """
    united = {}
    for name, value in pars.items():
        unit = parameter_unit(name)
        if isinstance(value, pint.Quantity):
            united[name] = value.to(unit)
        else:
            united[name] = Q_(float(value), unit)
    return united


def drop_units(pars):
    """Strip units, leaving the magnitude of every quantity and other values untouched."""
    return {
        name: float(value.magnitude) if isinstance(value, pint.Quantity) else value
        for name, value in pars.items()
    }


# ========================================================================================================================
# Parameter groups
# ========================================================================================================================

class ParameterGroup(dict):
    """
    A validated set of parameters from a single namespace.

    Construction fails if any required name is missing; names from other
    namespaces are dropped.
    """
    which = None

    def __init__(self, pars):
        if not isinstance(pars, Mapping):
            raise TypeError(f"{self.which}_par must be constructed from a mapping, not {type(pars).__name__}")
        names = parameter_names(self.which)
        missing = [name for name in names if name not in pars]
        if missing:
            raise ValueError(
                f"{', '.join(missing)} not in parameter names required for {self.which}"
            )
        super().__init__((name, pars[name]) for name in names)

    def with_units(self):
        return type(self)(set_parameter_units(self))

    def __repr__(self):
        return f"{type(self).__name__}({dict.__repr__(self)})"


class LeafPar(ParameterGroup):
    which = 'leaf'


class EnviroPar(ParameterGroup):
    which = 'enviro'


class Constants(ParameterGroup):
    which = 'constants'


class BakePar(ParameterGroup):
    which = 'bake'


def _make_parameters(cls, defaults, replace):
    pars = dict(defaults)
    if replace:
        unknown = [name for name in replace if name not in defaults]
        if unknown:
            raise ValueError(f"{', '.join(unknown)} not in {cls.which} parameter names")
        pars.update(replace)
    return cls(pars)


def make_leafpar(replace=None):
    """
    Leaf parameters with defaults, optionally replacing some of them.

    Example
    -------
    lp = make_leafpar({'g_sc': Q_(0.3, 'mol / m ** 2 / s / MPa'), 'leafsize': 0.05})
    """
    return _make_parameters(LeafPar, DEFAULT_LEAF_PAR, replace)


def make_enviropar(replace=None):
    return _make_parameters(EnviroPar, DEFAULT_ENVIRO_PAR, replace)


def make_constants(replace=None):
    return _make_parameters(Constants, DEFAULT_CONSTANTS, replace)


def make_bakepar(replace=None):
    return _make_parameters(BakePar, DEFAULT_BAKE_PAR, replace)


def merge_parameters(*groups, allow_override=False):
    """
    Concatenate parameter groups into one flat dictionary.

    Parameters
    ----------
    *groups : Mapping
        Parameter groups, merged in order.
    allow_override : bool, optional
        If True, a name found in more than one group takes its value from the
        last group. Otherwise a repeated name is an error.

    Raises
    ------
    ValueError
        If a name appears in more than one group and `allow_override` is False.
    """
    pars = {}
    for group in groups:
        repeated = [name for name in group if name in pars]
        if repeated and not allow_override:
            suffix = 've' if len(repeated) > 1 else 's'
            raise ValueError(
                f"{', '.join(repeated)} ha{suffix} more than one entry. "
                "Only one named entry is allowed per parameter."
            )
        pars.update(group)
    return pars
