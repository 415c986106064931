import unittest

import numpy as np

from hierinterp.surrogates.bases.quadrature import (
    clenshaw_curtis_rule_growth,
    clenshaw_curtis_hierarchical_to_nodal_index,
    clenshaw_curtis_poly_indices_to_quad_rule_indices,
    clenshaw_curtis_pts_wts_1D,
    clenshaw_curtis_in_polynomial_order,
    gauss_legendre_pts_wts_1D,
)
from hierinterp.surrogates.bases.univariate import (
    ClenshawCurtisQuadratureRule,
)


class TestQuadratureRules(unittest.TestCase):
    def setUp(self):
        np.random.seed(1)

    def test_clenshaw_curtis_growth(self):
        assert [clenshaw_curtis_rule_growth(ll) for ll in range(4)] == [
            1, 3, 5, 9]
        assert clenshaw_curtis_hierarchical_to_nodal_index(2, 0, 0) == 2
        assert clenshaw_curtis_hierarchical_to_nodal_index(2, 1, 1) == 4
        assert clenshaw_curtis_hierarchical_to_nodal_index(2, 2, 1) == 3
        assert np.array_equal(
            clenshaw_curtis_poly_indices_to_quad_rule_indices(2),
            [2, 0, 4, 1, 3])

    def test_clenshaw_curtis_exactness(self):
        for level in range(1, 5):
            x, w = clenshaw_curtis_pts_wts_1D(level)
            nsamples = clenshaw_curtis_rule_growth(level)
            assert np.all(np.diff(x) > 0)
            for degree in range(nsamples):
                exact = 0. if degree % 2 == 1 else 1./(degree+1)
                assert np.allclose(w.dot(x**degree), exact)

    def test_polynomial_ordering(self):
        x, w = clenshaw_curtis_in_polynomial_order(3, False)
        x2 = clenshaw_curtis_in_polynomial_order(2, False)[0]
        # the points of a lower level come first
        assert np.allclose(x[:5], x2)
        x, weights = clenshaw_curtis_in_polynomial_order(2)
        assert len(weights) == 3
        assert np.allclose(weights[1], [2./3., 1./6., 1./6.])

    def test_gauss_legendre(self):
        x, w = gauss_legendre_pts_wts_1D(3)
        assert np.allclose(w.sum(), 1.)
        assert np.allclose(w.dot(x**4), 1./5.)

    def test_quadrature_rule_storage(self):
        quad_rule = ClenshawCurtisQuadratureRule(store=True)
        samples, weights = quad_rule(3)
        assert samples.shape[0] == quad_rule.nnodes(3)
        assert quad_rule(3)[0] is samples
        self.assertRaises(ValueError, quad_rule, -1)


if __name__ == "__main__":
    unittest.main(verbosity=2)
