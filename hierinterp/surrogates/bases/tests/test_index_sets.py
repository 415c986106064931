import unittest

import numpy as np
import matplotlib.pyplot as plt

from hierinterp.util.utilities import hash_array
from hierinterp.surrogates.bases.multiindex import (
    compute_hyperbolic_level_indices,
    compute_hyperbolic_indices,
    sort_indices_lexiographically,
    get_forward_neighbor,
    get_backward_neighbor,
    indices_are_downward_closed,
    is_admissible,
    MaxLevelAdmissibilityCriteria,
    MaxLevelPerDimAdmissibilityCriteria,
    plot_indices,
)


class TestIndexSets(unittest.TestCase):
    def setUp(self):
        np.random.seed(1)

    def test_hyperbolic_indices(self):
        indices = compute_hyperbolic_level_indices(2, 2)
        assert np.array_equal(indices, [[2, 1, 0], [0, 1, 2]])
        assert compute_hyperbolic_indices(2, 2).shape == (2, 6)
        assert compute_hyperbolic_indices(3, 2).shape == (3, 10)
        # the 0.5 norm excludes the mixed index
        indices = compute_hyperbolic_level_indices(2, 2, 0.5)
        assert np.array_equal(indices, [[2, 0], [0, 2]])

    def test_sort_indices(self):
        indices = np.array([[0, 1, 0, 2], [2, 0, 0, 0]])
        assert np.array_equal(
            sort_indices_lexiographically(indices),
            [[0, 1, 2, 0], [0, 0, 0, 2]])

    def test_neighbors_and_admissibility(self):
        index = np.array([1, 0])
        assert np.array_equal(get_forward_neighbor(index, 1), [1, 1])
        assert np.array_equal(get_backward_neighbor(index, 0), [0, 0])
        assert np.array_equal(index, [1, 0])

        selected = set(hash_array(ii) for ii in np.array(
            [[0, 0], [1, 0], [0, 1]]))
        assert is_admissible(np.array([1, 1]), selected)
        assert not is_admissible(np.array([1, 0]), selected)
        assert not is_admissible(np.array([2, 1]), selected)

        assert indices_are_downward_closed(np.array([[0, 1, 0], [0, 0, 1]]))
        assert not indices_are_downward_closed(np.array([[0, 1], [0, 1]]))

    def test_admissibility_criteria(self):
        criteria = MaxLevelAdmissibilityCriteria(2)
        assert criteria(np.array([1, 1]))
        assert not criteria(np.array([2, 1]))
        criteria = MaxLevelPerDimAdmissibilityCriteria([1, 3])
        assert criteria(np.array([1, 3]))
        assert not criteria(np.array([2, 0]))

    def test_plot_indices(self):
        indices = compute_hyperbolic_indices(2, 2)
        ax = plt.figure().gca()
        plot_indices(ax, indices, np.array([[3], [0]]))
        self.assertRaises(
            RuntimeError, plot_indices, ax, compute_hyperbolic_indices(1, 2))
        ax = plt.figure().add_subplot(projection="3d")
        plot_indices(ax, compute_hyperbolic_indices(3, 2))
        self.assertRaises(
            ValueError, plot_indices, plt.figure().gca(),
            compute_hyperbolic_indices(3, 2))
        plt.close("all")


if __name__ == "__main__":
    unittest.main(verbosity=2)
