import unittest

import numpy as np

from hierinterp.surrogates.sparsegrids.surrdata import SurrogateData


class TestSurrogateData(unittest.TestCase):
    def setUp(self):
        np.random.seed(1)

    def test_append(self):
        store = SurrogateData(2)
        samples = np.random.uniform(-1, 1, (2, 4))
        store.append(samples, samples.sum(axis=0))
        store.append(samples[:, :1], samples[:, :1].sum(axis=0))
        assert store.npoints() == 5
        assert np.allclose(store.variables([4]), samples[:, :1])
        assert np.allclose(store.response_value(np.arange(4)),
                           samples.sum(axis=0))
        self.assertRaises(RuntimeError, store.response_gradient, [0])
        self.assertRaises(ValueError, store.append, samples[:1], samples[0])
        self.assertRaises(
            ValueError, store.append, samples, samples.sum(axis=0)[:3])

    def test_gradients(self):
        store = SurrogateData(1, 2)
        samples = np.random.uniform(-1, 1, (1, 3))
        grads = np.vstack([samples, 2*samples])
        self.assertRaises(ValueError, store.append, samples, samples[0])
        self.assertRaises(
            ValueError, store.append, samples, samples[0], grads[:1])
        store.append(samples, samples[0], grads)
        assert np.allclose(store.response_gradient([1]), grads[:, 1:2])
        assert store.response_gradients().shape == (2, 3)

    def test_pop_push_points(self):
        store = SurrogateData(1, 1)
        samples = np.arange(5.)[None, :]
        store.append(samples, samples[0], 2*samples)
        store.pop_points(2, (1,))
        assert store.npoints() == 3
        assert np.allclose(store.get_samples(), samples[:, :3])
        assert store.popped_keys() == [(1,)]
        self.assertRaises(RuntimeError, store.pop_points, 1, (1,))
        self.assertRaises(RuntimeError, store.push_points, (2,))

        store.push_points((1,))
        assert np.allclose(store.get_samples(), samples)
        assert np.allclose(store.response_values(), samples[0])
        assert np.allclose(store.response_gradients(), 2*samples)
        assert len(store.popped_keys()) == 0

        # points popped without a key are discarded
        store.pop_points(1)
        assert store.npoints() == 4
        assert len(store.popped_keys()) == 0
        self.assertRaises(RuntimeError, store.pop_points, 5)

        store.pop_points(1, (3,))
        copied = store.copy()
        store.clear_popped()
        assert copied.popped_keys() == [(3,)]
        assert len(store.popped_keys()) == 0


if __name__ == "__main__":
    unittest.main(verbosity=2)
