from abc import ABC, abstractmethod

import numpy as np

from hierinterp.surrogates.bases.quadrature import (
    clenshaw_curtis_in_polynomial_order,
    clenshaw_curtis_rule_growth,
    gauss_legendre_pts_wts_1D,
)


def univariate_lagrange_polynomial(abscissa, samples):
    r"""
    Evaluate the Lagrange basis polynomials

    .. math:: \ell_j(x) = \prod_{i\neq j} \frac{x-x_i}{x_j-x_i}

    Parameters
    ----------
    abscissa : np.ndarray (nabscissa)
        The interpolation nodes

    samples : np.ndarray (nsamples)
        The samples at which to evaluate the basis

    Returns
    -------
    values : np.ndarray (nsamples, nabscissa)
        The values of each basis at each sample
    """
    assert abscissa.ndim == 1
    assert samples.ndim == 1
    nabscissa = abscissa.shape[0]
    denoms = abscissa[:, None] - abscissa[None, :]
    numers = samples[:, None] - abscissa[None, :]
    values = np.empty((samples.shape[0], nabscissa))
    for ii in range(nabscissa):
        denom = np.prod(denoms[ii, :ii]) * np.prod(denoms[ii, ii+1:])
        numer = (np.prod(numers[:, :ii], axis=1) *
                 np.prod(numers[:, ii+1:], axis=1))
        values[:, ii] = numer / denom
    return values


def univariate_lagrange_polynomial_derivatives(abscissa, samples):
    """
    Evaluate the first derivative of the Lagrange basis polynomials using the
    product rule.

    Returns
    -------
    derivs : np.ndarray (nsamples, nabscissa)
        The derivatives of each basis at each sample
    """
    assert abscissa.ndim == 1
    assert samples.ndim == 1
    nabscissa = abscissa.shape[0]
    denoms = abscissa[:, None] - abscissa[None, :]
    samples_diff = samples[:, None] - abscissa[None, :]
    derivs = np.zeros((samples.shape[0], nabscissa))
    for jj in range(nabscissa):
        denom = np.prod(np.delete(denoms[jj], jj))
        for kk in range(nabscissa):
            if kk != jj:
                derivs[:, jj] += np.prod(
                    np.delete(samples_diff, (jj, kk), axis=1), axis=1)
        derivs[:, jj] /= denom
    return derivs


class UnivariateQuadratureRule(ABC):
    def __init__(self, store=False):
        """
        Parameters
        ----------
        store : bool
            Store all quadrature rules computed. This is useful
            if repetedly calling the quadrature rule and
            the cost of computing the quadrature rule is nontrivial
        """
        self._store = store
        self._quad_samples = dict()
        self._quad_weights = dict()

    @abstractmethod
    def _quad_rule(self, level):
        raise NotImplementedError

    @abstractmethod
    def nnodes(self, level):
        raise NotImplementedError

    def __call__(self, level):
        if level < 0:
            raise ValueError("level must be non-negative")
        if self._store and level in self._quad_samples:
            return self._quad_samples[level], self._quad_weights[level]
        quad_samples, quad_weights = self._quad_rule(level)
        if self._store:
            self._quad_samples[level] = quad_samples
            self._quad_weights[level] = quad_weights
        return quad_samples, quad_weights

    def __repr__(self):
        return "{0}(store={1})".format(self.__class__.__name__, self._store)


class ClenshawCurtisQuadratureRule(UnivariateQuadratureRule):
    """
    Nested Clenshaw-Curtis rule returned in polynomial order, so the samples
    of level l are the first samples of level l+1. Integrates functions on
    [a, b] with respect to the uniform probability measure (weights sum to
    one) or the Lebesgue measure.
    """

    def __init__(self, prob_measure=True, bounds=None, store=False):
        super().__init__(store=store)
        self._prob_measure = prob_measure
        if bounds is None:
            bounds = [-1, 1]
        if len(bounds) != 2 or bounds[1] <= bounds[0]:
            raise ValueError("bounds must be an interval [a, b] with b > a")
        self._bounds = bounds

    def nnodes(self, level):
        return clenshaw_curtis_rule_growth(level)

    def bounds(self):
        return self._bounds

    def prob_measure(self):
        return self._prob_measure

    def _quad_rule(self, level):
        quad_samples, quad_weights = clenshaw_curtis_in_polynomial_order(
            level, False)
        length = self._bounds[1] - self._bounds[0]
        quad_samples = (quad_samples + 1) / 2 * length + self._bounds[0]
        if not self._prob_measure:
            # clenshaw curtis weights are for the uniform measure 1/2
            # on [-1, 1]
            quad_weights = quad_weights * length
        return quad_samples, quad_weights

    def __repr__(self):
        return "{0}(bounds={1}, prob_measure={2})".format(
            self.__class__.__name__, self._bounds, self._prob_measure)


class UnivariateHierarchicalBasis(ABC):
    """
    One-dimensional interpolation basis defined on a nested point sequence.

    The basis of level l consists of one polynomial per point of the level l
    rule. Only the points first introduced at level l (the delta points)
    carry hierarchical surpluses, but their basis is interpolatory with
    respect to all the points of level l.
    """

    def __init__(self, quad_rule):
        if not isinstance(quad_rule, ClenshawCurtisQuadratureRule):
            raise ValueError(
                "quad_rule must be an instance of "
                "ClenshawCurtisQuadratureRule")
        self._quad_rule = quad_rule
        self._weights = dict()

    def nnodes(self, level):
        return self._quad_rule.nnodes(level)

    def nodes(self, level):
        return self._quad_rule(level)[0]

    def delta_indices(self, level):
        """
        Return the indices, within the level ``level`` nodes, of the nodes
        that are not members of the rule of level ``level-1``.
        """
        if level == 0:
            return np.zeros(1, dtype=int)
        return np.arange(self.nnodes(level-1), self.nnodes(level))

    def delta_size(self, level):
        return self.delta_indices(level).shape[0]

    def bounds(self):
        return self._quad_rule.bounds()

    def _check_samples(self, samples):
        samples = np.atleast_1d(np.asarray(samples, dtype=float))
        if samples.ndim != 1:
            raise ValueError("samples must be a 1D array")
        return samples

    @abstractmethod
    def _type1_values(self, samples, level):
        raise NotImplementedError

    @abstractmethod
    def _type1_gradients(self, samples, level):
        raise NotImplementedError

    @abstractmethod
    def _type1_weights(self, level):
        raise NotImplementedError

    def type1_values(self, samples, level):
        """
        Returns
        -------
        values : np.ndarray (nsamples, nnodes(level))
        """
        return self._type1_values(self._check_samples(samples), level)

    def type1_gradients(self, samples, level):
        return self._type1_gradients(self._check_samples(samples), level)

    def type1_weights(self, level):
        if level not in self._weights:
            self._weights[level] = self._compute_weights(level)
        return self._weights[level][0]

    def _compute_weights(self, level):
        return self._type1_weights(level), None

    def type2_values(self, samples, level):
        raise NotImplementedError(
            "{0} does not interpolate gradients".format(
                self.__class__.__name__))

    def type2_gradients(self, samples, level):
        raise NotImplementedError(
            "{0} does not interpolate gradients".format(
                self.__class__.__name__))

    def type2_weights(self, level):
        raise NotImplementedError(
            "{0} does not interpolate gradients".format(
                self.__class__.__name__))

    def __repr__(self):
        return "{0}(quad_rule={1})".format(
            self.__class__.__name__, self._quad_rule)


class UnivariateHierarchicalLagrangeBasis(UnivariateHierarchicalBasis):
    """Global Lagrange polynomials on the nested Clenshaw-Curtis points."""

    def _type1_values(self, samples, level):
        return univariate_lagrange_polynomial(self.nodes(level), samples)

    def _type1_gradients(self, samples, level):
        return univariate_lagrange_polynomial_derivatives(
            self.nodes(level), samples)

    def _type1_weights(self, level):
        # the rule is interpolatory so the integral of each Lagrange
        # polynomial is the quadrature weight of its node
        return self._quad_rule(level)[1]


class UnivariateHierarchicalHermiteBasis(UnivariateHierarchicalBasis):
    r"""
    Global Hermite interpolation polynomials on the nested Clenshaw-Curtis
    points, matching values and first derivatives

    .. math::

        h^{(1)}_i(x) = \left(1-2\ell_i'(x_i)(x-x_i)\right)\ell_i(x)^2, \qquad
        h^{(2)}_i(x) = (x-x_i)\ell_i(x)^2
    """

    def _lagrange(self, samples, level):
        nodes = self.nodes(level)
        vals = univariate_lagrange_polynomial(nodes, samples)
        derivs = univariate_lagrange_polynomial_derivatives(nodes, samples)
        node_derivs = np.diag(
            univariate_lagrange_polynomial_derivatives(nodes, nodes))
        return nodes, vals, derivs, node_derivs

    def _type1_values(self, samples, level):
        nodes, vals, derivs, node_derivs = self._lagrange(samples, level)
        diff = samples[:, None]-nodes[None, :]
        return (1-2*node_derivs[None, :]*diff)*vals**2

    def _type1_gradients(self, samples, level):
        nodes, vals, derivs, node_derivs = self._lagrange(samples, level)
        diff = samples[:, None]-nodes[None, :]
        return (-2*node_derivs[None, :]*vals**2 +
                2*(1-2*node_derivs[None, :]*diff)*vals*derivs)

    def _type2_values(self, samples, level):
        nodes = self.nodes(level)
        vals = univariate_lagrange_polynomial(nodes, samples)
        return (samples[:, None]-nodes[None, :])*vals**2

    def _type2_gradients(self, samples, level):
        nodes, vals, derivs, node_derivs = self._lagrange(samples, level)
        diff = samples[:, None]-nodes[None, :]
        return vals**2 + 2*diff*vals*derivs

    def type2_values(self, samples, level):
        return self._type2_values(self._check_samples(samples), level)

    def type2_gradients(self, samples, level):
        return self._type2_gradients(self._check_samples(samples), level)

    def _compute_weights(self, level):
        # the Hermite basis has degree 2n-1 so a Gauss rule with 2n
        # points integrates it exactly
        gauss_x, gauss_w = gauss_legendre_pts_wts_1D(2*self.nnodes(level))
        lb, ub = self.bounds()
        gauss_x = (gauss_x+1)/2*(ub-lb)+lb
        if not self._quad_rule.prob_measure():
            gauss_w = gauss_w*(ub-lb)
        t1_wts = gauss_w.dot(self._type1_values(gauss_x, level))
        t2_wts = gauss_w.dot(self._type2_values(gauss_x, level))
        return t1_wts, t2_wts

    def _type1_weights(self, level):
        return self._compute_weights(level)[0]

    def type2_weights(self, level):
        if level not in self._weights:
            self._weights[level] = self._compute_weights(level)
        return self._weights[level][1]
