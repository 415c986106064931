import unittest

import matplotlib.pyplot as plt
import numpy as np

from hierinterp.surrogates.bases.univariate import (
    ClenshawCurtisQuadratureRule,
    UnivariateHierarchicalLagrangeBasis,
    UnivariateHierarchicalHermiteBasis,
)
from hierinterp.surrogates.bases.multiindex import (
    MaxLevelPerDimAdmissibilityCriteria,
)
from hierinterp.surrogates.sparsegrids.driver import HierarchSparseGridDriver


def setup_driver(nvars, hermite=False, admissibility_fun=None):
    basis_type = UnivariateHierarchicalLagrangeBasis
    if hermite:
        basis_type = UnivariateHierarchicalHermiteBasis
    bases_1d = [basis_type(ClenshawCurtisQuadratureRule())
                for dd in range(nvars)]
    return HierarchSparseGridDriver(
        bases_1d, use_derivs=hermite, admissibility_fun=admissibility_fun)


class TestHierarchSparseGridDriver(unittest.TestCase):
    def setUp(self):
        np.random.seed(1)

    def test_isotropic_grid(self):
        driver = setup_driver(2)
        driver.initialize_grid(2)
        assert driver.nsets() == [1, 2, 3]
        assert driver.npoints() == 13
        train_samples = driver.train_samples()
        assert train_samples.shape == (2, 13)
        assert np.unique(train_samples, axis=1).shape[1] == 13
        assert np.allclose(train_samples[:, 0], [0., 0.])

        colloc_indices = np.hstack(
            [indices for sets in driver.collocation_indices()
             for indices in sets])
        assert np.array_equal(np.sort(colloc_indices), np.arange(13))

        # the points of a set are the delta points of each dimension
        assert np.allclose(
            driver.set_samples(2, 1), [[-1, 1, -1, 1], [-1, -1, 1, 1]])
        assert driver.collocation_key()[2][1].shape == (4, 2)
        assert np.allclose(
            driver.type1_weight_set_arrays()[2][1], np.full(4, 1./36.))
        assert len(driver.type2_weight_set_arrays()[2]) == 0

        self.assertRaises(
            ValueError, HierarchSparseGridDriver, [None])

    def test_initialize_from_sets(self):
        driver = setup_driver(2)
        driver.initialize_from_sets(np.array([[0, 1, 2, 0], [0, 0, 0, 1]]))
        assert driver.nsets() == [1, 2, 1]
        assert driver.npoints() == 7
        self.assertRaises(
            ValueError, driver.initialize_from_sets,
            np.array([[0, 2], [0, 0]]))

    def test_increment_level(self):
        driver = setup_driver(2)
        self.assertRaises(RuntimeError, driver.increment_level)
        driver.initialize_grid(1)
        new_sets = driver.increment_level()
        assert len(new_sets) == 3
        assert driver.reference_key() == [[0, 1], [0, 2], [0, 0]]
        assert driver.increment_key() == [[1, 1], [2, 2], [0, 3]]
        samples = driver.level_range_samples(driver.increment_key())
        assert samples.shape == (2, 8)
        assert np.allclose(samples, driver.train_samples()[:, 5:])

    def test_trial_sets(self):
        driver = setup_driver(2)
        driver.initialize_grid(1)
        driver.initialize_sets()
        cand_sets = driver.candidate_sets()
        assert np.array_equal(cand_sets, [[2, 1, 0], [0, 1, 2]])

        driver.push_trial_set(cand_sets[:, 1])
        assert driver.trial_level() == 2
        assert driver.npoints() == 9
        self.assertRaises(RuntimeError, driver.push_trial_set, cand_sets[:, 0])

        # a trial set that is not the last set of its level is not removed
        trial_set = driver.trial_set()
        driver._trial_set = cand_sets[:, 0]
        self.assertRaises(RuntimeError, driver.pop_trial_set)
        assert driver.npoints() == 9
        assert driver.nsets() == [1, 2, 2]
        driver._trial_set = trial_set

        driver.pop_trial_set()
        assert driver.npoints() == 5
        assert driver.computed_trial_set(cand_sets[:, 1])
        assert not driver.computed_trial_set(cand_sets[:, 0])
        self.assertRaises(RuntimeError, driver.restore_set, cand_sets[:, 0])

        driver.push_trial_set(cand_sets[:, 0])
        driver.merge_set()
        assert driver.nsets() == [1, 2, 1]
        # (3, 0) becomes a candidate, (2, 1) needs (1, 1) first
        assert np.array_equal(
            driver.candidate_sets(), [[1, 0, 3], [1, 2, 0]])
        assert driver.reference_key() == [[0, 1], [0, 2], [0, 1]]

        driver.restore_set(cand_sets[:, 1])
        assert driver.increment_key() == [[1, 1], [2, 2], [1, 2]]
        driver.merge_set()
        assert not driver.computed_trial_set(cand_sets[:, 1])

    def test_finalize_sets(self):
        driver = setup_driver(2)
        driver.initialize_grid(1)
        driver.initialize_sets()
        for index in driver.candidate_sets().T[::-1]:
            driver.push_trial_set(index)
            driver.pop_trial_set()
        driver.finalize_sets()
        finalization_sets = driver.finalization_sets()
        assert np.array_equal(
            np.asarray(finalization_sets).T, [[0, 1, 2], [2, 1, 0]])
        assert driver.nsets() == [1, 2, 3]
        assert driver.npoints() == 13

    def test_admissibility(self):
        driver = setup_driver(
            2, admissibility_fun=MaxLevelPerDimAdmissibilityCriteria([2, 0]))
        driver.initialize_grid(0)
        driver.initialize_sets()
        assert np.array_equal(driver.candidate_sets(), [[1], [0]])

    def test_type2_weights(self):
        driver = setup_driver(2, hermite=True)
        driver.initialize_grid(1)
        t2_wts = driver.type2_weight_set_arrays()
        assert t2_wts[1][0].shape == (2, 2)
        # the type-2 basis of the level one rule is odd about the origin
        # at the boundary nodes
        assert np.allclose(t2_wts[1][0][0], -t2_wts[1][0][0][::-1])

    def test_plot_grid(self):
        driver = setup_driver(2)
        driver.initialize_grid(2)
        driver.initialize_sets()
        ax = plt.figure().gca()
        driver.plot_grid(ax)
        driver.plot_sets(ax)
        plt.close("all")


if __name__ == "__main__":
    unittest.main(verbosity=2)
