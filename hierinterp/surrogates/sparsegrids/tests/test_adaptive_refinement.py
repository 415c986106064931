import unittest

import numpy as np

from hierinterp.surrogates.bases.univariate import (
    ClenshawCurtisQuadratureRule,
    UnivariateHierarchicalLagrangeBasis,
)
from hierinterp.surrogates.bases.multiindex import (
    MaxLevelAdmissibilityCriteria,
)
from hierinterp.surrogates.sparsegrids.driver import HierarchSparseGridDriver
from hierinterp.surrogates.sparsegrids.surrdata import SurrogateData
from hierinterp.surrogates.sparsegrids.options import (
    ExpansionConfigOptions,
    UNIFORM_CONTROL,
    DIMENSION_ADAPTIVE_CONTROL_GENERALIZED,
)
from hierinterp.surrogates.sparsegrids.hierarchical import (
    HierarchInterpPolyApproximation,
)
from hierinterp.surrogates.sparsegrids.adaptive import (
    AdaptiveHierarchicalSparseGrid,
    PriorityQueue,
    LevelRefinementCriteria,
    DeltaBetaRefinementCriteria,
)


def setup_driver(nvars, max_level=None):
    bases_1d = [UnivariateHierarchicalLagrangeBasis(
        ClenshawCurtisQuadratureRule(store=True)) for dd in range(nvars)]
    admissibility_fun = None
    if max_level is not None:
        admissibility_fun = MaxLevelAdmissibilityCriteria(max_level)
    return HierarchSparseGridDriver(
        bases_1d, admissibility_fun=admissibility_fun)


def setup_approximations(driver, nqoi, refinement_control):
    return [HierarchInterpPolyApproximation(
        driver, ExpansionConfigOptions(refinement_control=refinement_control))
        for ii in range(nqoi)]


def polynomial_fun(samples):
    return np.array([samples[0]**3+samples[0]*samples[1]+samples[1]**2,
                     samples[1]**2]).T


def exponential_fun(samples):
    return np.exp(samples[0]+0.1*samples[1])[:, None]


class TestAdaptiveRefinement(unittest.TestCase):
    def setUp(self):
        np.random.seed(1)

    def test_priority_queue(self):
        queue = PriorityQueue()
        queue.put((2., 1., 0))
        queue.put((-1., 3., 1))
        queue.put((0., 2., 2))
        assert len(queue) == 3
        assert queue.get() == (-1., 3., 1)
        assert queue.get() == (0., 2., 2)
        self.assertRaises(ValueError, queue.put, (1., 2.))
        assert not queue.empty()
        assert queue != PriorityQueue()

    def test_refine_uniformly(self):
        driver = setup_driver(2)
        approxs = setup_approximations(driver, 2, UNIFORM_CONTROL)
        sg = AdaptiveHierarchicalSparseGrid(driver, approxs, polynomial_fun)
        sg.initialize(level=1)
        assert sg.nsamples() == 5
        sg.refine_uniformly(2)
        assert sg.nsamples() == driver.npoints()
        assert sg.nsamples() == 29
        self.assertRaises(RuntimeError, sg.step)

        samples = np.random.uniform(-1, 1, (2, 10))
        values = np.array([approx.value(samples) for approx in approxs]).T
        assert np.allclose(values, polynomial_fun(samples))
        assert np.allclose(approxs[0].mean(), 1./3.)
        assert np.allclose(approxs[1].variance(), 4./45.)
        # the sets added by the last refinement do not change the mean
        assert np.allclose(approxs[0].delta_mean(), 0.)

    def test_dimension_adaptive_refinement(self):
        driver = setup_driver(2, max_level=3)
        approxs = setup_approximations(
            driver, 2, DIMENSION_ADAPTIVE_CONTROL_GENERALIZED)
        sg = AdaptiveHierarchicalSparseGrid(driver, approxs, polynomial_fun)
        sg.initialize(level=1)
        self.assertRaises(RuntimeError, sg.refine_uniformly)
        # refine until no candidate sets remain
        nsteps = sg.build(tol=-1)
        assert nsteps == 7
        assert not sg.step()
        sg.finalize()
        assert driver.nsets() == [1, 2, 3, 4]

        for approx in approxs:
            assert approx.surrogate_data().npoints() == driver.npoints()
            assert len(approx.popped_sets()) == 0
        samples = np.random.uniform(-1, 1, (2, 10))
        values = np.array([approx.value(samples) for approx in approxs]).T
        assert np.allclose(values, polynomial_fun(samples))
        assert np.allclose(approxs[0].mean(), 1./3.)
        assert np.allclose(approxs[1].variance(), 4./45.)

    def test_incremental_coefficients_match_recomputed(self):
        driver = setup_driver(2)
        approxs = setup_approximations(
            driver, 1, DIMENSION_ADAPTIVE_CONTROL_GENERALIZED)
        sg = AdaptiveHierarchicalSparseGrid(
            driver, approxs, exponential_fun, verbosity=2)
        sg.initialize(level=1)
        with self.assertLogs(
                "hierinterp.surrogates.sparsegrids.adaptive", level="INFO"):
            nsteps = sg.build(max_steps=3)
        assert nsteps == 3
        sg.finalize()

        store = SurrogateData(2)
        samples = driver.train_samples()
        store.append(samples, exponential_fun(samples)[:, 0])
        approx = HierarchInterpPolyApproximation(driver)
        approx.set_active_key(0, store)
        approx.compute_coefficients()
        assert np.allclose(approx.mean(), approxs[0].mean())
        assert np.allclose(approx.variance(), approxs[0].variance())
        assert np.allclose(
            approxs[0].value(samples), exponential_fun(samples)[:, 0])

    def test_refinement_criteria(self):
        driver = setup_driver(2)
        approxs = setup_approximations(
            driver, 1, DIMENSION_ADAPTIVE_CONTROL_GENERALIZED)
        sg = AdaptiveHierarchicalSparseGrid(
            driver, approxs, exponential_fun,
            refine_criteria=DeltaBetaRefinementCriteria([2.]))
        sg.initialize(level=1)
        assert sg.step()
        assert driver.nsets()[2] == 1

        driver = setup_driver(2)
        approxs = setup_approximations(
            driver, 1, DIMENSION_ADAPTIVE_CONTROL_GENERALIZED)
        sg = AdaptiveHierarchicalSparseGrid(
            driver, approxs, exponential_fun,
            refine_criteria=LevelRefinementCriteria())
        sg.initialize(level=0)
        assert sg.step()
        # candidates are sorted lexiographically and ties keep that order
        assert np.allclose(driver.smolyak_multi_index()[1][0], [1, 0])

        self.assertRaises(
            ValueError, AdaptiveHierarchicalSparseGrid, driver, approxs,
            exponential_fun, refine_criteria=lambda index, npts: 0)
        self.assertRaises(
            ValueError, AdaptiveHierarchicalSparseGrid, setup_driver(2),
            approxs, exponential_fun)

    def test_bad_function_output(self):
        driver = setup_driver(2)
        approxs = setup_approximations(driver, 2, UNIFORM_CONTROL)
        sg = AdaptiveHierarchicalSparseGrid(
            driver, approxs, exponential_fun)
        self.assertRaises(ValueError, sg.initialize)


if __name__ == "__main__":
    unittest.main(verbosity=2)
