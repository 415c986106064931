import unittest

import numpy as np

from hierinterp.util.utilities import (
    cartesian_product,
    outer_product,
    hash_array,
    nchoosek,
    lists_of_arrays_equal,
    lists_of_lists_of_arrays_equal,
)


class TestUtilities(unittest.TestCase):
    def setUp(self):
        np.random.seed(1)

    def test_cartesian_product(self):
        # the first set varies fastest
        result = cartesian_product([[1, 2], [3, 4]])
        assert np.array_equal(result, [[1, 2, 1, 2], [3, 3, 4, 4]])
        result = cartesian_product([np.arange(3), np.arange(2), [5]])
        assert result.shape == (3, 6)
        assert cartesian_product([[1, 2], []]).shape == (2, 0)

    def test_outer_product(self):
        assert np.allclose(outer_product([[1, 2], [3, 4]]), [3, 6, 4, 8])

    def test_hash_array(self):
        array = np.random.uniform(0, 1, 4)
        assert hash_array(array) == hash_array(array.copy())
        assert hash_array(array) != hash_array(array[::-1])
        assert hash_array(array, 6) == hash_array(array+1e-10, 6)
        assert hash_array(np.array([1, 0])) == hash_array(
            np.array([[1, 0], [2, 3]])[0])

    def test_nchoosek(self):
        assert nchoosek(5, 2) == 10
        assert np.array_equal(nchoosek(4, np.arange(5)), [1, 4, 6, 4, 1])

    def test_lists_of_arrays_equal(self):
        list1 = [np.zeros(2), np.ones((2, 2))]
        list2 = [np.zeros(2), np.ones((2, 2))+1e-12]
        assert lists_of_arrays_equal(list1, list2)
        assert not lists_of_arrays_equal(list1, list2, exact=True)
        assert not lists_of_arrays_equal(list1, list2[:1])
        assert not lists_of_arrays_equal(list1, [np.zeros(3), np.ones(2)])
        assert lists_of_lists_of_arrays_equal([list1, list1], [list2, list1])
        assert not lists_of_lists_of_arrays_equal([list1], [list1, list1])


if __name__ == "__main__":
    unittest.main(verbosity=2)
