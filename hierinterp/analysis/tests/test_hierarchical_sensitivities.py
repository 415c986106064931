import unittest

import numpy as np
import matplotlib.pyplot as plt

from hierinterp.surrogates.bases.univariate import (
    ClenshawCurtisQuadratureRule,
    UnivariateHierarchicalLagrangeBasis,
)
from hierinterp.surrogates.sparsegrids.driver import HierarchSparseGridDriver
from hierinterp.surrogates.sparsegrids.surrdata import SurrogateData
from hierinterp.surrogates.sparsegrids.hierarchical import (
    HierarchInterpPolyApproximation,
)
from hierinterp.analysis.sensitivity_analysis import (
    hierarchical_sobol_sensitivities,
    plot_main_effects,
    plot_total_effects,
    plot_interaction_values,
    plot_sensitivity_indices,
)


def polynomial_fun(samples):
    return np.array([
        samples[0]+samples[1]**2+samples[0]*samples[1],
        samples[1]**2]).T


def setup_approximations(driver, fun):
    samples = driver.train_samples()
    values = fun(samples)
    approxs = []
    for ii in range(values.shape[1]):
        store = SurrogateData(driver.nvars())
        store.append(samples, values[:, ii])
        approx = HierarchInterpPolyApproximation(driver)
        approx.set_active_key(0, store)
        approx.compute_coefficients()
        approxs.append(approx)
    return approxs


class TestHierarchicalSensitivities(unittest.TestCase):
    def setUp(self):
        np.random.seed(1)
        bases_1d = [UnivariateHierarchicalLagrangeBasis(
            ClenshawCurtisQuadratureRule(store=True)) for dd in range(2)]
        self.driver = HierarchSparseGridDriver(bases_1d)
        self.driver.initialize_grid(3)

    def test_sobol_sensitivities(self):
        approxs = setup_approximations(self.driver, polynomial_fun)
        result = hierarchical_sobol_sensitivities(approxs)
        assert np.allclose(result.main_effects, [[5./8., 0.], [1./6., 1.]])
        assert np.allclose(result.total_effects, [[5./6., 0.], [3./8., 1.]])
        assert np.allclose(
            result.sobol_indices,
            [[5./8., 0.], [1./6., 1.], [5./24., 0.]])
        assert [tuple(inter) for inter in
                result.sobol_interaction_indices] == [(0,), (1,), (0, 1)]

        result = hierarchical_sobol_sensitivities(approxs[0], max_order=1)
        assert result.sobol_indices.shape == (2, 1)
        assert np.allclose(result.main_effects[:, 0], [5./8., 1./6.])

        bases_1d = [UnivariateHierarchicalLagrangeBasis(
            ClenshawCurtisQuadratureRule()) for dd in range(2)]
        other_driver = HierarchSparseGridDriver(bases_1d)
        other_driver.initialize_grid(3)
        other_approx = setup_approximations(
            other_driver, polynomial_fun)[0]
        self.assertRaises(
            ValueError, hierarchical_sobol_sensitivities,
            [approxs[0], other_approx])

    def test_plot_sensitivities(self):
        approxs = setup_approximations(self.driver, polynomial_fun)
        result = hierarchical_sobol_sensitivities(approxs)
        ax = plt.figure().gca()
        plot_main_effects(result.main_effects, ax)
        plot_total_effects(result.total_effects, plt.figure().gca())
        plot_interaction_values(
            result.sobol_indices, result.sobol_interaction_indices,
            plt.figure().gca())
        self.assertRaises(
            ValueError, plot_interaction_values, result.sobol_indices[:2],
            result.sobol_interaction_indices, ax)
        self.assertRaises(
            ValueError, plot_main_effects, 2*result.main_effects, ax)
        plot_sensitivity_indices(result)
        plt.close("all")


if __name__ == "__main__":
    unittest.main(verbosity=2)
