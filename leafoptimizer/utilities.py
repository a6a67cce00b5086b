import logging
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger(__name__)

# ========================================================================================================================
# Function PPFD_to_shortwave
# ========================================================================================================================

def PPFD_to_shortwave(PPFD: float, E_q: float, f_par: float) -> float:
    """
    Convert photosynthetic photon flux density (PPFD) to incident shortwave
    radiation (S_sw).

    Parameters
    ----------
    PPFD : float
        Photosynthetic photon flux density (µmol quanta m⁻² s⁻¹).
    E_q : float
        Energy per mole of quanta (kJ mol⁻¹).
    f_par : float
        Fraction of shortwave radiation within the PAR range (dimensionless, 0–1).

    Returns
    -------
    float
        Incident shortwave radiation S_sw (W m⁻²).

    Notes
    -----
    - µmol × kJ mol⁻¹ = mJ, hence the factor 1e-3 to obtain W m⁻².
    - Inverse of the usual SW → PAR partitioning: S_sw = PPFD × E_q / f_par.

    Examples
    --------
    PPFD = 1500    # µmol m⁻² s⁻¹
    E_q = 220      # kJ mol⁻¹
    f_par = 0.5

    S_sw = PPFD_to_shortwave(PPFD, E_q, f_par)
    print(f"Shortwave radiation: {S_sw:.1f} W/m²")
    # Shortwave radiation: 660.0 W/m²
    """
    return PPFD * E_q / f_par * 1e-3


# ========================================================================================================================
# CO2 <-> H2O conductance conversion
# ========================================================================================================================

def gc2gw(g_c, D_c, D_w, boundary_layer=False):
    """
    Convert a conductance to CO2 into a conductance to water vapour.

    Through stomata and cuticle the ratio of diffusivities applies directly;
    through the boundary layer it is raised to the 2/3 power.

    Parameters
    ----------
    g_c : float or np.ndarray
        Conductance to CO2 (µmol m⁻² s⁻¹ Pa⁻¹).
    D_c, D_w : float
        Diffusion coefficients for CO2 and water vapour (m² s⁻¹). Only the
        ratio matters.
    boundary_layer : bool, optional

    Returns
    -------
    g_w : float or np.ndarray
        Conductance to water vapour (µmol m⁻² s⁻¹ Pa⁻¹).
    """
    ratio = D_w / D_c
    if boundary_layer:
        ratio = ratio ** (2.0 / 3.0)
    return g_c * ratio


def gw2gc(g_w, D_c, D_w, boundary_layer=False):
    """Inverse of `gc2gw`."""
    ratio = D_w / D_c
    if boundary_layer:
        ratio = ratio ** (2.0 / 3.0)
    return g_w / ratio


# ========================================================================================================================
# Logistic transform of the stomatal ratio
# ========================================================================================================================

def logistic(x):
    """Logistic function, 1 / (1 + exp(-x))."""
    return 1.0 / (1.0 + np.exp(-x))


def logit(p):
    """Inverse of `logistic`."""
    return np.log(p / (1.0 - p))


def sr_to_logit(k_sc):
    """Logit of the fraction of stomatal conductance on the upper surface."""
    return logit(k_sc / (1.0 + k_sc))


def logit_to_sr(logit_sr):
    """Upper:lower stomatal conductance partition from its logit."""
    p = logistic(logit_sr)
    return p / (1.0 - p)


# ========================================================================================================================
# Progress reporting
# ========================================================================================================================

@dataclass(frozen=True)
class ReportingPolicy:
    """Whether progress messages are emitted. Messages go to the package logger at INFO."""
    quiet: bool = False

    def message(self, text):
        if not self.quiet:
            logger.info(text)
