"""
Tests for bracketed root finding, leaf temperature and chloroplastic CO2.
"""

import math

import numpy as np
import pytest

from leafoptimizer import RootSolution, find_A, find_root, find_tleaf
from leafoptimizer.ecophysiology import A_demand
from leafoptimizer.energy_balance import energy_balance, is_closed


class TestFindRoot:

    def test_square_root_of_two(self):
        soln = find_root(lambda x: x ** 2 - 2, 0.0, 2.0)
        assert soln.convergence == 0
        assert soln.root == pytest.approx(math.sqrt(2))
        assert soln.value == pytest.approx(0.0, abs=1e-9)

    def test_extra_args(self):
        soln = find_root(lambda x, a: x - a, 0.0, 10.0, args=(3.5,))
        assert soln.root == pytest.approx(3.5)

    def test_no_sign_change(self):
        soln = find_root(lambda x: x ** 2 + 1, -1.0, 1.0)
        assert soln.convergence == 1
        assert np.isnan(soln.root)
        assert np.isnan(soln.value)

    def test_function_raises(self):
        soln = find_root(lambda x: math.sqrt(x) - 1, -1.0, 4.0)
        assert soln.convergence == 1
        assert np.isnan(soln.root)

    def test_non_finite_endpoint(self):
        soln = find_root(lambda x: np.nan if x < 0 else x - 1, -1.0, 4.0)
        assert soln.convergence == 1
        assert np.isnan(soln.root)

    def test_failed_sentinel(self):
        soln = RootSolution.failed()
        assert soln.convergence == 1
        assert np.isnan(soln.root) and np.isnan(soln.value)


class TestFindTleaf:

    def test_closes_energy_balance(self, tleaf_pars):
        soln = find_tleaf(tleaf_pars)
        assert soln.convergence == 0
        assert abs(soln.root - tleaf_pars['T_air']) < 30
        assert is_closed(energy_balance(soln.root, tleaf_pars))

    def test_warmer_leaf_in_sun(self, tleaf_pars):
        # Sunlit leaf with default conductances runs slightly warmer than air
        sunny = find_tleaf(tleaf_pars).root
        shade = find_tleaf({**tleaf_pars, 'S_sw': 0.0}).root
        assert sunny > shade

    def test_less_transpiration_warms_leaf(self, tleaf_pars):
        wet = find_tleaf({**tleaf_pars, 'g_sw': 10.0}).root
        dry = find_tleaf({**tleaf_pars, 'g_sw': 0.1}).root
        assert dry > wet

    def test_fails_without_wind(self, tleaf_pars):
        soln = find_tleaf({**tleaf_pars, 'wind': 0.0})
        assert soln.convergence == 1
        assert np.isnan(soln.root)


class TestFindA:

    def test_supply_meets_demand(self, baked_pars):
        ph = find_A(baked_pars)
        assert ph['convergence'] == 0
        assert ph['A'] > 0
        assert 0.1 < ph['C_chl'] < baked_pars['C_air']
        assert ph['A'] == pytest.approx(A_demand(ph['C_chl'], baked_pars), rel=1e-6)

    def test_more_conductance_more_assimilation(self, baked_pars):
        low = find_A({**baked_pars, 'g_sc': 0.5})
        high = find_A({**baked_pars, 'g_sc': 5.0})
        assert high['A'] > low['A']
        assert high['C_chl'] > low['C_chl']

    def test_no_root_in_darkness(self, baked_pars):
        # Without light demand is -R_d everywhere, so supply always exceeds it
        ph = find_A({**baked_pars, 'PPFD': 0.0})
        assert ph['convergence'] == 1
        assert np.isnan(ph['A'])
        assert np.isnan(ph['C_chl'])
        assert ph['g_tc'] > 0
