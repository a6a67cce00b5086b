"""
Tests for the leaf energy balance and micrometeorological helpers.
"""

import numpy as np
import pytest

from leafoptimizer.energy_balance import E, EnergyBalance, energy_balance, is_closed
from leafoptimizer.micrometeorology import (
    calc_boundary_layer_conductance,
    calc_latent_heat_vaporization,
    calc_saturation_vapour_pressure,
    calc_total_water_conductance,
    split_conductance,
)
from leafoptimizer.utilities import PPFD_to_shortwave, gc2gw, gw2gc


BL_CONSTANTS = dict(T_air=298.15, P=101.3246, D_h0=1.9e-5, D_m0=13.3e-6, D_w0=21.2e-6, eT=1.75)


class TestMicrometeorology:

    def test_saturation_vapour_pressure_25C(self):
        assert 3100 < calc_saturation_vapour_pressure(298.15) < 3250

    def test_saturation_vapour_pressure_increases(self):
        T = np.linspace(270, 320, 11)
        assert np.all(np.diff(calc_saturation_vapour_pressure(T)) > 0)

    def test_latent_heat_of_vaporization(self):
        assert calc_latent_heat_vaporization(298.15) == pytest.approx(43992.9, abs=1.0)

    def test_boundary_layer_wind(self):
        slow = calc_boundary_layer_conductance(wind=0.5, leafsize=0.1, **BL_CONSTANTS)
        fast = calc_boundary_layer_conductance(wind=5.0, leafsize=0.1, **BL_CONSTANTS)
        assert fast['g_bw'] > slow['g_bw']
        assert fast['g_bh'] > slow['g_bh']

    def test_boundary_layer_leafsize(self):
        small = calc_boundary_layer_conductance(wind=2.0, leafsize=0.001, **BL_CONSTANTS)
        large = calc_boundary_layer_conductance(wind=2.0, leafsize=0.4, **BL_CONSTANTS)
        assert small['g_bw'] > large['g_bw']

    def test_boundary_layer_no_wind(self):
        with pytest.raises(ValueError):
            calc_boundary_layer_conductance(wind=0.0, leafsize=0.1, **BL_CONSTANTS)

    def test_split_conductance(self):
        upper, lower = split_conductance(4.0, 1.0)
        assert upper == lower == 2.0
        upper, lower = split_conductance(4.0, 0.0)
        assert (upper, lower) == (0.0, 4.0)

    def test_split_conductance_is_ratio(self):
        # k is upper:lower, so k = 3 puts three quarters on the upper surface
        upper, lower = split_conductance(4.0, 3.0)
        assert upper / lower == pytest.approx(3.0)
        assert upper == pytest.approx(3.0)

    def test_total_water_conductance_below_stomatal(self, tleaf_pars):
        g_tw = calc_total_water_conductance(tleaf_pars)
        assert 0 < g_tw < tleaf_pars['g_sw'] + tleaf_pars['g_uw']


class TestConversions:

    def test_shortwave(self):
        assert PPFD_to_shortwave(1500, 220, 0.5) == pytest.approx(660.0)

    def test_gc2gw_ratio(self):
        assert gc2gw(1.0, 12.9e-6, 21.2e-6) == pytest.approx(21.2 / 12.9)

    def test_gc2gw_monotonic(self):
        g_c = np.linspace(0, 10, 21)
        assert np.all(np.diff(gc2gw(g_c, 12.9e-6, 21.2e-6)) > 0)

    def test_gw2gc_inverts_gc2gw(self):
        for boundary_layer in (False, True):
            g_w = gc2gw(3.0, 12.9e-6, 21.2e-6, boundary_layer=boundary_layer)
            assert gw2gc(g_w, 12.9e-6, 21.2e-6, boundary_layer=boundary_layer) == pytest.approx(3.0)


class TestEnergyBalance:

    def test_components(self, tleaf_pars):
        c = EnergyBalance(tleaf_pars).components(tleaf_pars['T_air'])
        assert set(c) == {'R_abs', 'S_r', 'H', 'L', 'E'}
        assert c['H'] == pytest.approx(0.0)
        assert c['E'] > 0
        assert c['L'] > 0

    def test_residual_brackets_a_root(self, tleaf_pars):
        eb = EnergyBalance(tleaf_pars)
        T_air = tleaf_pars['T_air']
        assert eb.residual(T_air - 30) > 0
        assert eb.residual(T_air + 30) < 0

    def test_residual_decreasing(self, tleaf_pars):
        eb = EnergyBalance(tleaf_pars)
        T = np.linspace(tleaf_pars['T_air'] - 30, tleaf_pars['T_air'] + 30, 61)
        residuals = np.array([eb.residual(t) for t in T])
        assert np.all(np.diff(residuals) < 0)

    def test_energy_balance_function(self, tleaf_pars):
        T_leaf = 300.0
        out = energy_balance(T_leaf, tleaf_pars, components=True)
        assert out['energy_balance'] == pytest.approx(energy_balance(T_leaf, tleaf_pars))
        c = out['components']
        assert out['energy_balance'] == pytest.approx(c['R_abs'] - c['S_r'] - c['H'] - c['L'])

    def test_transpiration_increases_with_conductance(self, tleaf_pars):
        low = E(300.0, {**tleaf_pars, 'g_sw': 1.0})
        high = E(300.0, {**tleaf_pars, 'g_sw': 10.0})
        assert high > low > 0

    def test_saturated_air_at_air_temperature(self, tleaf_pars):
        assert E(tleaf_pars['T_air'], {**tleaf_pars, 'RH': 1.0}) == pytest.approx(0.0)

    def test_is_closed(self):
        assert is_closed(0.04)
        assert is_closed(-0.04)
        assert not is_closed(0.2)
        assert not is_closed(np.nan)
