import copy
import itertools
import logging

import numpy as np

from hierinterp.surrogates.sparsegrids.approximation import (
    PolynomialApproximation,
    delta_beta_map,
    delta_std_deviation_map,
    delta_z_map,
)
from hierinterp.surrogates.sparsegrids.options import (
    SMALL_NUMBER,
    DIMENSION_ADAPTIVE_CONTROL_GENERALIZED,
    ADD_COMBINE,
    MULT_COMBINE,
)


logger = logging.getLogger(__name__)


class _BasisCache(object):
    """
    Memoize the one-dimensional basis values needed to evaluate a
    hierarchical interpolant at a fixed set of samples.

    Parameters
    ----------
    bases_1d : list
        The univariate hierarchical bases

    samples : np.ndarray (nvars, nsamples)
    """

    def __init__(self, bases_1d, samples):
        self._bases_1d = bases_1d
        self._samples = samples
        self._values = dict()

    def nsamples(self):
        return self._samples.shape[1]

    def values(self, kind, dim, level):
        key = (kind, dim, level)
        if key not in self._values:
            basis = self._bases_1d[dim]
            funs = {"t1": basis.type1_values,
                    "t1_grad": basis.type1_gradients,
                    "t2": basis.type2_values,
                    "t2_grad": basis.type2_gradients}
            self._values[key] = funs[kind](self._samples[dim], level)
        return self._values[key]


class _StatisticsCache(object):
    """
    Memoized statistics of one expansion.

    Each quantity has a computed flag whose bit 0 marks the value and
    bit 1 marks the gradient as up to date. The coordinates (and
    derivative variables) used to compute a memoized quantity are stored
    with it so coordinate dependent quantities are only reused at the same
    coordinates.
    """
    current = ("mean", "variance")
    reference = ("ref_mean", "ref_variance")
    delta = ("delta_mean", "delta_variance")

    def __init__(self):
        self.numerical_moments = np.zeros(2)
        self.mean_gradient = None
        self.variance_gradient = None
        self.response_moments = None
        self.reference_moments = None
        self.delta_moments = None
        self.computed = dict(
            (name, 0) for name in self.current+self.reference+self.delta)
        self.x_prev = dict()

    def allocate_reference(self, nmoments):
        if (self.reference_moments is None or
                self.reference_moments.shape[0] != nmoments):
            self.reference_moments = np.zeros(nmoments)
            self.delta_moments = np.zeros(nmoments)

    def is_computed(self, name, bit, x=None, dvv=None):
        if not self.computed[name] & bit:
            return False
        prev_x, prev_dvv = self.x_prev.get((name, bit), (None, None))
        if prev_dvv != dvv:
            return False
        if prev_x is None or x is None:
            return prev_x is None and x is None
        return np.array_equal(prev_x, x)

    def set_computed(self, name, bit, x=None, dvv=None):
        self.computed[name] |= bit
        if x is not None:
            x = np.array(x, copy=True)
        self.x_prev[(name, bit)] = (x, dvv)

    def clear(self, names):
        for name in names:
            self.computed[name] = 0
            for bit in (1, 2):
                self.x_prev.pop((name, bit), None)

    def clear_current(self):
        self.clear(self.current)
        self.response_moments = None

    def clear_reference(self):
        self.clear(self.reference)

    def clear_delta(self):
        self.clear(self.delta)

    def clear_all(self):
        self.clear_current()
        self.clear_reference()
        self.clear_delta()

    def copy(self):
        return copy.deepcopy(self)


class _PoppedSet(object):
    def __init__(self, t1, t2, t1g, stats, mutation_id, prev_mutation_id):
        self.t1 = t1
        self.t2 = t2
        self.t1g = t1g
        self.stats = stats
        self.mutation_id = mutation_id
        self.prev_mutation_id = prev_mutation_id


class _ExpansionData(object):
    """The coefficients, sample store and popped sets of one key."""

    def __init__(self, surr_data, private_data, mutation_id):
        self.surr_data = surr_data
        self.private_data = private_data
        self.t1 = []
        self.t2 = []
        self.t1g = []
        self.popped = dict()
        self.stats = _StatisticsCache()
        self.mutation_id = mutation_id
        # True once surpluses have been computed from the sample store
        self.populated = False


def _set_tuple(index_set):
    return tuple(int(ii) for ii in index_set)


class HierarchInterpPolyApproximation(PolynomialApproximation):
    r"""
    Hierarchical interpolant of a response on a nested sparse grid.

    The interpolant is the sum over every index set of the tensor product
    of one-dimensional basis functions weighted by hierarchical surpluses

    .. math::

        f(x) \approx \sum_{l}\sum_{s\in S_l}\sum_{p\in s}
        \alpha_p \prod_{d=1}^{D}\phi^{(l_d)}_{p_d}(x_d)

    The surplus of a point on level :math:`L` is the response at that
    point minus the interpolant through level :math:`L-1`. Gradient
    enhanced interpolants also store a type-2 surplus per variable.

    Coefficients are stored per expansion key. Each key owns a sample
    store, which may be shared with other expansions or privately owned.
    When privately owned, withdrawing and reinstating index sets is
    mirrored in the store.

    Parameters
    ----------
    driver : :class:`HierarchSparseGridDriver`
        The sparse grid. The expansion borrows it and never modifies it.

    expcfg_options : :class:`ExpansionConfigOptions`

    basis_options : :class:`BasisConfigOptions`
    """

    def __init__(self, driver, expcfg_options=None, basis_options=None):
        super().__init__(driver, expcfg_options, basis_options)
        self._expansions = dict()
        self._active_key = None
        self._mutation_counter = itertools.count()

    # -- expansion keys -------------------------------------------------

    def set_active_key(self, key, surr_data=None, private_data=None):
        """
        Select the expansion key used by all subsequent operations.

        Parameters
        ----------
        key : hashable
            The expansion key

        surr_data : :class:`SurrogateData`
            The sample store of the key. Required the first time a key is
            used.

        private_data : boolean
            True if the expansion owns ``surr_data`` and must mirror the
            withdrawal of index sets in it. Defaults to False for a new key
            and leaves an existing key unchanged.
        """
        if key not in self._expansions:
            if surr_data is None:
                raise ValueError(
                    "surr_data must be provided for new key {0}".format(key))
            self._expansions[key] = _ExpansionData(
                surr_data, bool(private_data), next(self._mutation_counter))
        else:
            if surr_data is not None:
                self._expansions[key].surr_data = surr_data
            if private_data is not None:
                self._expansions[key].private_data = private_data
        self._active_key = key

    def active_key(self):
        return self._active_key

    @property
    def _data(self):
        if self._active_key is None:
            raise RuntimeError("set_active_key must be called first")
        return self._expansions[self._active_key]

    def surrogate_data(self):
        return self._data.surr_data

    def coefficients(self):
        """
        Return the type-1, type-2 and coefficient gradient surpluses of
        the active key.
        """
        data = self._data
        return data.t1, data.t2, data.t1g

    def popped_sets(self):
        return list(self._data.popped.keys())

    def clear_popped(self):
        """Discard the withdrawn index sets of the active key."""
        data = self._data
        data.popped = dict()
        if data.private_data:
            data.surr_data.clear_popped()

    def _coefficients_changed(self):
        self._data.mutation_id = next(self._mutation_counter)

    def _use_derivs(self):
        return self._basis_opts.use_derivs

    def _nderiv_vars(self):
        return self._data.surr_data.ngrad_vars()

    def _all_dims(self):
        return list(range(self.nvars()))

    def _full_key(self, t1=None):
        if t1 is None:
            t1 = self._data.t1
        return [[0, len(sets)] for sets in t1]

    def _set_ends(self):
        return [len(sets) for sets in self._data.t1]

    def _check_populated(self, name):
        if not self._data.populated:
            raise RuntimeError(
                "{0} requires computed coefficients".format(name))

    def _check_value_coefficients(self, name):
        if not self._expcfg.expansion_coeff_flag:
            raise RuntimeError(
                "{0} requires expansion_coeff_flag".format(name))
        self._check_populated(name)

    def _check_gradient_coefficients(self, name):
        if not self._expcfg.expansion_coeff_grad_flag:
            raise RuntimeError(
                "{0} requires expansion_coeff_grad_flag".format(name))
        self._check_populated(name)

    def _check_refinement_control(self, name):
        stats = self._data.stats
        if stats.reference_moments is None:
            raise RuntimeError(
                "{0} requires refinement_control and allocate_arrays".format(
                    name))

    def _check_x(self, x):
        if not self._all_variables_mode():
            if x is not None:
                raise ValueError(
                    "x is only used when nonrandom_indices are specified")
            return None
        if x is None:
            raise ValueError(
                "x must be provided when nonrandom_indices are specified")
        x = np.asarray(x, dtype=float).reshape(-1)
        if x.shape[0] != self.nvars():
            raise ValueError("x must have nvars entries")
        return x

    def _nonrandom_x(self, x):
        if x is None:
            return None
        return x[self._expcfg.nonrandom_indices]

    # -- raw data -------------------------------------------------------

    def _set_data(self, lev, set_idx):
        """
        Return the response values and gradients at the points of one set.

        Returns
        -------
        values : np.ndarray (npts)

        grads : np.ndarray (ngrad_vars, npts)
            None if gradients are not used
        """
        store = self._data.surr_data
        indices = self._driver.collocation_indices()[lev][set_idx]
        if indices.max() >= store.npoints():
            raise RuntimeError(
                "Sample store has {0} points but set {1} needs index "
                "{2}".format(store.npoints(), set_idx, indices.max()))
        if not np.allclose(store.variables(indices),
                           self._driver.set_samples(lev, set_idx)):
            raise RuntimeError(
                "Sample store points do not match the collocation points of "
                "set {0} on level {1}".format(set_idx, lev))
        values = store.response_value(indices)
        grads = None
        if self._use_derivs() or self._expcfg.expansion_coeff_grad_flag:
            grads = store.response_gradient(indices)
        return values, grads

    def _set_points(self, lev, set_idx, colloc_key=None):
        if colloc_key is None:
            return self._driver.set_samples(lev, set_idx)
        index = self._driver.smolyak_multi_index()[lev][set_idx]
        key = colloc_key[lev][set_idx]
        bases_1d = self._driver.bases_1d()
        samples = np.zeros((self.nvars(), key.shape[0]))
        for dd in range(self.nvars()):
            samples[dd] = bases_1d[dd].nodes(index[dd])[key[:, dd]]
        return samples

    # -- interpolant primitives -----------------------------------------

    def _basis_factor(self, cache, dim, level, key_col, integrate, kind):
        basis = self._driver.bases_1d()[dim]
        if integrate:
            if kind.startswith("t1"):
                return basis.type1_weights(level)[key_col][None, :]
            return basis.type2_weights(level)[key_col][None, :]
        return cache.values(kind, dim, level)[:, key_col]

    def _hierarchical_sum(self, cache, t1, t2, set_key, eval_dims, int_dims,
                          deriv_dim=None, colloc_key=None):
        r"""
        Sum the contributions of the sets in ``set_key``, evaluating the
        basis of ``eval_dims`` at the samples of ``cache`` and integrating
        the basis of ``int_dims``. Dimensions in neither list are ignored.

        Parameters
        ----------
        cache : :class:`_BasisCache`
            None when ``eval_dims`` is empty

        t1 : list
            Nested type-1 coefficients. Each entry is np.ndarray (npts) or
            np.ndarray (nqoi, npts)

        t2 : list
            Nested type-2 coefficients, np.ndarray (nvars, npts). None if
            not used

        set_key : list
            The [start, end) range of sets of each level

        deriv_dim : integer
            Differentiate with respect to this member of ``eval_dims``

        Returns
        -------
        result : np.ndarray (nsamples) or (nsamples, nqoi)
        """
        if colloc_key is None:
            colloc_key = self._driver.collocation_key()
        smolyak_mi = self._driver.smolyak_multi_index()
        nsamples = 1 if cache is None else cache.nsamples()
        dims = list(eval_dims)+list(int_dims)
        integrate = [False]*len(eval_dims)+[True]*len(int_dims)
        result = None
        for lev in range(min(len(set_key), len(t1))):
            start, end = set_key[lev]
            for set_idx in range(start, min(end, len(t1[lev]))):
                index = smolyak_mi[lev][set_idx]
                key = colloc_key[lev][set_idx]
                factors = []
                for dd, integ in zip(dims, integrate):
                    kind = "t1_grad" if dd == deriv_dim else "t1"
                    factors.append(self._basis_factor(
                        cache, dd, index[dd], key[:, dd], integ, kind))
                basis = np.ones((nsamples, key.shape[0]))
                for factor in factors:
                    basis = basis*factor
                contrib = basis.dot(t1[lev][set_idx].T)
                if t2 is not None:
                    for ii, (vv, integ) in enumerate(zip(dims, integrate)):
                        kind = "t2_grad" if vv == deriv_dim else "t2"
                        basis = self._basis_factor(
                            cache, vv, index[vv], key[:, vv], integ, kind)
                        basis = basis*np.ones((nsamples, key.shape[0]))
                        for jj, factor in enumerate(factors):
                            if jj != ii:
                                basis = basis*factor
                        contrib = contrib+basis.dot(t2[lev][set_idx][vv])
                result = contrib if result is None else result+contrib
        if result is None:
            return np.zeros(nsamples)
        return result

    def _expectation(self, t1, t2, set_key):
        """Integrate the interpolant with the driver's set weights."""
        t1_wts = self._driver.type1_weight_set_arrays()
        t2_wts = self._driver.type2_weight_set_arrays()
        result = 0.
        for lev in range(min(len(set_key), len(t1))):
            start, end = set_key[lev]
            for set_idx in range(start, min(end, len(t1[lev]))):
                result = result+t1[lev][set_idx].dot(t1_wts[lev][set_idx])
                if t2 is not None:
                    result = result+np.sum(
                        t2[lev][set_idx]*t2_wts[lev][set_idx])
        return result

    def _mixed_expectation(self, t1, t2, set_key, x=None, deriv_dim=None):
        """
        Integrate over the random variables. When nonrandom indices are
        specified the nonrandom variables are fixed at ``x``.
        """
        if x is None:
            return self._expectation(t1, t2, set_key)
        cache = _BasisCache(self._driver.bases_1d(), x[:, None])
        result = self._hierarchical_sum(
            cache, t1, t2, set_key, self._expcfg.nonrandom_indices,
            self._random_indices(), deriv_dim=deriv_dim)
        return result[0]

    def _telescope(self, values_fun, set_ends, with_t2=False, dims=None,
                   colloc_key=None):
        """
        Compute the hierarchical surpluses of a function known at the
        points of every set.

        Parameters
        ----------
        values_fun : callable
            Function with signature

            ``values_fun(lev, set_idx, samples) -> (values, grads)``

            where samples is np.ndarray (nvars, npts), values is
            np.ndarray (npts) or np.ndarray (nqoi, npts) and grads is
            np.ndarray (nvars, npts) or None

        set_ends : list
            The number of sets of each level to include

        dims : list
            The variables the function depends on. Defaults to all
        """
        if dims is None:
            dims = self._all_dims()
        bases_1d = self._driver.bases_1d()
        t1 = [[] for lev in range(len(set_ends))]
        t2 = [[] for lev in range(len(set_ends))] if with_t2 else None
        for lev in range(len(set_ends)):
            prev_key = [[0, set_ends[ll]] for ll in range(lev)]
            for set_idx in range(set_ends[lev]):
                samples = self._set_points(lev, set_idx, colloc_key)
                values, grads = values_fun(lev, set_idx, samples)
                cache = _BasisCache(bases_1d, samples)
                prev = self._hierarchical_sum(
                    cache, t1, t2, prev_key, dims, [], colloc_key=colloc_key)
                t1[lev].append(values-prev.T)
                if with_t2:
                    prev_grads = np.zeros((self.nvars(), samples.shape[1]))
                    for dd in dims:
                        prev_grads[dd] = self._hierarchical_sum(
                            cache, t1, t2, prev_key, dims, [],
                            deriv_dim=dd, colloc_key=colloc_key)
                    t2[lev].append(grads-prev_grads)
        return t1, t2

    def _product_coefficients(self, other, center1, center2, set_ends=None):
        """
        Surpluses of the product of the centered responses of this and
        another expansion.
        """
        if set_ends is None:
            set_ends = self._set_ends()

        def values_fun(lev, set_idx, samples):
            vals1, grads1 = self._set_data(lev, set_idx)
            vals2, grads2 = other._set_data(lev, set_idx)
            values = (vals1-center1)*(vals2-center2)
            if not self._use_derivs():
                return values, None
            return values, (vals1-center1)*grads2+(vals2-center2)*grads1

        return self._telescope(
            values_fun, set_ends, with_t2=self._use_derivs())

    def _central_moment_coefficients(self, center, order):
        def values_fun(lev, set_idx, samples):
            vals, grads = self._set_data(lev, set_idx)
            values = (vals-center)**order
            if not self._use_derivs():
                return values, None
            return values, order*(vals-center)**(order-1)*grads

        return self._telescope(
            values_fun, self._set_ends(), with_t2=self._use_derivs())

    def _t2_coefficients(self):
        return self._data.t2 if self._use_derivs() else None

    # -- coefficient lifecycle ------------------------------------------

    def _coefficient_shapes(self, npts):
        t2_shape = (self.nvars(), npts) if self._use_derivs() else None
        t1g_shape = None
        if self._expcfg.expansion_coeff_grad_flag:
            t1g_shape = (self._nderiv_vars(), npts)
        return (npts,), t2_shape, t1g_shape

    def _new_set_storage(self, npts):
        t1_shape, t2_shape, t1g_shape = self._coefficient_shapes(npts)
        return (np.zeros(t1_shape),
                None if t2_shape is None else np.zeros(t2_shape),
                None if t1g_shape is None else np.zeros(t1g_shape))

    def _extend_levels(self, nlevels):
        data = self._data
        while len(data.t1) < nlevels:
            data.t1.append([])
            data.t2.append([])
            data.t1g.append([])

    def _append_set_storage(self, lev, storage):
        data = self._data
        self._extend_levels(lev+1)
        data.t1[lev].append(storage[0])
        data.t2[lev].append(storage[1])
        data.t1g[lev].append(storage[2])

    def allocate_arrays(self):
        """
        Shape the coefficient containers like the driver's index sets.
        Existing coefficients whose shape is unchanged are kept.
        """
        data = self._data
        colloc_key = self._driver.collocation_key()
        changed = len(data.t1) != len(colloc_key)
        self._extend_levels(len(colloc_key))
        del data.t1[len(colloc_key):]
        del data.t2[len(colloc_key):]
        del data.t1g[len(colloc_key):]
        for lev in range(len(colloc_key)):
            nsets = len(colloc_key[lev])
            if len(data.t1[lev]) != nsets:
                changed = True
            del data.t1[lev][nsets:]
            del data.t2[lev][nsets:]
            del data.t1g[lev][nsets:]
            for set_idx in range(nsets):
                shapes = self._coefficient_shapes(
                    colloc_key[lev][set_idx].shape[0])
                storage = self._new_set_storage(
                    colloc_key[lev][set_idx].shape[0])
                for coefs, shape, new in zip(
                        (data.t1, data.t2, data.t1g), shapes, storage):
                    if set_idx >= len(coefs[lev]):
                        coefs[lev].append(new)
                        changed = True
                        continue
                    old = coefs[lev][set_idx]
                    if ((old is None and shape is None) or
                            (old is not None and old.shape == shape)):
                        continue
                    coefs[lev][set_idx] = new
                    changed = True
        if self._expcfg.refinement_control is not None:
            nmoments = 4 if not self._all_variables_mode() else 2
            data.stats.allocate_reference(nmoments)
        if changed:
            self._coefficients_changed()

    def _compute_set_coefficients(self, lev, set_idx):
        data = self._data
        values, grads = self._set_data(lev, set_idx)
        samples = self._driver.set_samples(lev, set_idx)
        cache = _BasisCache(self._driver.bases_1d(), samples)
        prev_key = [[0, len(data.t1[ll])] for ll in range(lev)]
        dims = self._all_dims()
        if self._expcfg.expansion_coeff_flag:
            t2 = self._t2_coefficients()
            prev = self._hierarchical_sum(
                cache, data.t1, t2, prev_key, dims, [])
            data.t1[lev][set_idx] = values-prev
            if self._use_derivs():
                prev_grads = np.asarray([
                    self._hierarchical_sum(
                        cache, data.t1, t2, prev_key, dims, [], deriv_dim=dd)
                    for dd in dims])
                data.t2[lev][set_idx] = grads-prev_grads
        if self._expcfg.expansion_coeff_grad_flag:
            prev = self._hierarchical_sum(
                cache, data.t1g, None, prev_key, dims, [])
            data.t1g[lev][set_idx] = grads-prev.T

    def compute_coefficients(self):
        """Compute the surpluses of every index set of the driver."""
        if not (self._expcfg.expansion_coeff_flag or
                self._expcfg.expansion_coeff_grad_flag):
            raise RuntimeError(
                "compute_coefficients requires expansion_coeff_flag or "
                "expansion_coeff_grad_flag")
        self.allocate_arrays()
        data = self._data
        for lev in range(len(data.t1)):
            for set_idx in range(len(data.t1[lev])):
                self._compute_set_coefficients(lev, set_idx)
        data.populated = True
        data.stats.clear_all()
        self._coefficients_changed()
        self.allocate_component_sobol()
        logger.debug("computed coefficients of %d sets for key %s",
                     sum(self._set_ends()), self._active_key)

    def _increment_current_from_reference(self):
        stats = self._data.stats
        if stats.reference_moments is not None:
            for idx, (cur, ref) in enumerate(
                    zip(stats.current, stats.reference)):
                if stats.computed[cur] & 1:
                    stats.reference_moments[idx] = (
                        stats.numerical_moments[idx])
                    stats.set_computed(ref, 1, *stats.x_prev[(cur, 1)])
                else:
                    stats.clear((ref,))
            if (stats.response_moments is not None and
                    stats.reference_moments.shape[0] == 4 and
                    stats.response_moments.shape[0] == 4):
                stats.reference_moments[2:] = stats.response_moments[2:]
        stats.clear_current()
        stats.clear_delta()

    def _decrement_current_to_reference(self):
        stats = self._data.stats
        stats.clear_current()
        if stats.reference_moments is not None:
            for idx, (cur, ref) in enumerate(
                    zip(stats.current, stats.reference)):
                if stats.computed[ref] & 1:
                    stats.numerical_moments[idx] = (
                        stats.reference_moments[idx])
                    stats.set_computed(cur, 1, *stats.x_prev[(ref, 1)])
        stats.clear_delta()

    def _increment_set(self, index_set):
        data = self._data
        lev = int(np.sum(index_set))
        smolyak_mi = self._driver.smolyak_multi_index()
        self._extend_levels(lev+1)
        set_idx = len(data.t1[lev])
        if (lev >= len(smolyak_mi) or set_idx >= len(smolyak_mi[lev]) or
                not np.array_equal(smolyak_mi[lev][set_idx], index_set)):
            raise RuntimeError(
                "set {0} is not the next set of level {1} of the "
                "driver".format(index_set, lev))
        self._append_set_storage(lev, self._new_set_storage(
            self._driver.collocation_key()[lev][set_idx].shape[0]))
        self._compute_set_coefficients(lev, set_idx)
        data.populated = True

    def increment_coefficients(self, index_set=None):
        """
        Compute the surpluses of the index sets added to the driver since
        the coefficients were last updated.

        Parameters
        ----------
        index_set : np.ndarray (nvars)
            Append only this set. If None the sets to add are determined by
            the refinement control: the trial set for dimension adaptive
            refinement, otherwise every set beyond the driver's increment
            sets on each level.
        """
        if index_set is not None:
            self._increment_set(np.asarray(index_set, dtype=int))
            self._data.stats.clear_current()
            self._data.stats.clear_delta()
            self._coefficients_changed()
            self.allocate_component_sobol()
            return
        self._increment_current_from_reference()
        if (self._expcfg.refinement_control ==
                DIMENSION_ADAPTIVE_CONTROL_GENERALIZED):
            trial_set = self._driver.trial_set()
            if trial_set is None:
                raise RuntimeError(
                    "increment_coefficients requires a driver trial set")
            self._increment_set(trial_set)
        else:
            data = self._data
            increment_sets = self._driver.increment_sets()
            nsets = self._driver.nsets()
            self._extend_levels(len(nsets))
            for lev in range(len(nsets)):
                if len(data.t1[lev]) != increment_sets[lev]:
                    raise RuntimeError(
                        "coefficients of level {0} are out of sync with the "
                        "driver".format(lev))
                for set_idx in range(increment_sets[lev], nsets[lev]):
                    self._increment_set(
                        self._driver.smolyak_multi_index()[lev][set_idx])
        self._coefficients_changed()
        self.allocate_component_sobol()
        logger.debug("incremented coefficients for key %s",
                     self._active_key)

    def decrement_coefficients(self, save_data=True):
        """
        Withdraw the coefficients of the driver's trial set, which must
        already have been popped from the driver.

        Parameters
        ----------
        save_data : boolean
            Keep the coefficients so the set can be reinstated with
            :meth:`push_coefficients`
        """
        data = self._data
        trial_set = self._driver.trial_set()
        if trial_set is None:
            raise RuntimeError(
                "decrement_coefficients requires a driver trial set")
        lev = int(trial_set.sum())
        if (lev >= len(data.t1) or len(data.t1[lev]) !=
                len(self._driver.smolyak_multi_index()[lev])+1):
            raise RuntimeError(
                "decrement_coefficients: the trial set must be popped from "
                "the driver first")
        key = _set_tuple(trial_set)
        stats = data.stats.copy()
        # pop the store first so a failure leaves the coefficients intact
        if data.private_data:
            data.surr_data.pop_points(
                data.t1[lev][-1].shape[0], key if save_data else None)
        t1, t2, t1g = data.t1[lev].pop(), data.t2[lev].pop(), \
            data.t1g[lev].pop()
        self._decrement_current_to_reference()
        prev_mutation_id = data.mutation_id
        self._coefficients_changed()
        if save_data:
            data.popped[key] = _PoppedSet(
                t1, t2, t1g, stats, data.mutation_id, prev_mutation_id)
        logger.debug("decremented set %s for key %s", key, self._active_key)

    def push_coefficients(self, index_set):
        """
        Reinstate the coefficients of a withdrawn index set, which must
        already have been pushed back onto the driver.
        """
        data = self._data
        key = _set_tuple(index_set)
        if key not in data.popped:
            raise RuntimeError(
                "push_coefficients: no coefficients were popped for "
                "{0}".format(key))
        lev = int(np.sum(key))
        smolyak_mi = self._driver.smolyak_multi_index()
        self._extend_levels(lev+1)
        if (lev >= len(smolyak_mi) or
                len(smolyak_mi[lev]) != len(data.t1[lev])+1 or
                _set_tuple(smolyak_mi[lev][-1]) != key):
            raise RuntimeError(
                "push_coefficients: set {0} must be pushed onto the driver "
                "first".format(key))
        popped = data.popped.pop(key)
        self._append_set_storage(lev, (popped.t1, popped.t2, popped.t1g))
        data.populated = True
        if data.private_data:
            data.surr_data.push_points(key)
        if popped.mutation_id == data.mutation_id:
            data.stats = popped.stats
            data.mutation_id = popped.prev_mutation_id
        else:
            self._increment_current_from_reference()
            self._coefficients_changed()
        self.allocate_component_sobol()
        logger.debug("pushed set %s for key %s", key, self._active_key)

    def finalize_coefficients(self):
        """
        Reinstate the coefficients of every set the driver appended when
        finalizing the grid.
        """
        data = self._data
        if data.private_data:
            for index_set in self._driver.finalization_sets():
                data.surr_data.push_points(_set_tuple(index_set))
        smolyak_mi = self._driver.smolyak_multi_index()
        self._extend_levels(len(smolyak_mi))
        for lev in range(len(smolyak_mi)):
            for set_idx in range(len(data.t1[lev]), len(smolyak_mi[lev])):
                key = _set_tuple(smolyak_mi[lev][set_idx])
                if key not in data.popped:
                    raise RuntimeError(
                        "finalize_coefficients: no coefficients were popped "
                        "for {0}".format(key))
                popped = data.popped.pop(key)
                self._append_set_storage(
                    lev, (popped.t1, popped.t2, popped.t1g))
        self.clear_popped()
        data.populated = True
        data.stats.clear_current()
        data.stats.clear_delta()
        self._coefficients_changed()
        self.allocate_component_sobol()
        logger.debug("finalized coefficients for key %s", self._active_key)

    def combine_coefficients(self, other_key, combine_type=None):
        """
        Combine the interpolant of another key with the interpolant of the
        active key and store the surpluses of the result under the active
        key.

        The sets of ``other_key`` must be a subset of the sets of the
        active key. The combination is computed at every collocation point
        of the active key and the surpluses are recomputed from it.

        Parameters
        ----------
        combine_type : string
            "add" or "mult". Defaults to the expansion options
        """
        if combine_type is None:
            combine_type = self._expcfg.combine_type
        if combine_type not in (ADD_COMBINE, MULT_COMBINE):
            raise ValueError(
                "combine_type {0} not supported".format(combine_type))
        if other_key not in self._expansions:
            raise RuntimeError("No coefficients for key {0}".format(other_key))
        data = self._data
        other = self._expansions[other_key]
        if not (data.populated and other.populated):
            raise RuntimeError(
                "combine_coefficients requires computed coefficients for "
                "keys {0} and {1}".format(self._active_key, other_key))
        if len(other.t1) > len(data.t1) or any(
                len(other.t1[lev]) > len(data.t1[lev])
                for lev in range(len(other.t1))):
            raise RuntimeError(
                "The sets of key {0} must be a subset of the sets of key "
                "{1}".format(other_key, self._active_key))
        use_derivs = self._use_derivs()
        grad_flag = self._expcfg.expansion_coeff_grad_flag
        dims = self._all_dims()
        bases_1d = self._driver.bases_1d()

        def interpolants(coefs, samples):
            t1, t2, t1g = coefs
            cache = _BasisCache(bases_1d, samples)
            t2 = t2 if use_derivs else None
            key = self._full_key(t1)
            vals = self._hierarchical_sum(cache, t1, t2, key, dims, [])
            grads, nonbasis_grads = None, None
            if use_derivs:
                grads = np.asarray([self._hierarchical_sum(
                    cache, t1, t2, key, dims, [], deriv_dim=dd)
                    for dd in dims])
            if grad_flag:
                nonbasis_grads = self._hierarchical_sum(
                    cache, t1g, None, key, dims, []).T
            return vals, grads, nonbasis_grads

        combined = dict()
        for lev in range(len(data.t1)):
            for set_idx in range(len(data.t1[lev])):
                samples = self._driver.set_samples(lev, set_idx)
                curr = interpolants((data.t1, data.t2, data.t1g), samples)
                stored = interpolants((other.t1, other.t2, other.t1g), samples)
                if combine_type == ADD_COMBINE:
                    combined[(lev, set_idx)] = tuple(
                        None if cc is None else cc+ss
                        for cc, ss in zip(curr, stored))
                    continue
                vals = curr[0]*stored[0]
                grads, nonbasis_grads = None, None
                if use_derivs:
                    grads = curr[1]*stored[0]+curr[0]*stored[1]
                if grad_flag:
                    nonbasis_grads = curr[2]*stored[0]+curr[0]*stored[2]
                combined[(lev, set_idx)] = (vals, grads, nonbasis_grads)

        set_ends = self._set_ends()
        t1, t2 = self._telescope(
            lambda lev, set_idx, samples: combined[(lev, set_idx)][:2],
            set_ends, with_t2=use_derivs)
        if grad_flag:
            t1g, _ = self._telescope(
                lambda lev, set_idx, samples: (
                    combined[(lev, set_idx)][2], None), set_ends)
        else:
            t1g = [[None]*nsets for nsets in set_ends]
        if not use_derivs:
            t2 = [[None]*nsets for nsets in set_ends]
        data.t1, data.t2, data.t1g = t1, t2, t1g
        data.populated = True
        data.stats.clear_all()
        self._coefficients_changed()
        self.allocate_component_sobol()
        logger.debug("combined key %s into key %s using %s", other_key,
                     self._active_key, combine_type)

    # -- evaluation -----------------------------------------------------

    def value(self, samples):
        """
        Evaluate the interpolant.

        Parameters
        ----------
        samples : np.ndarray (nvars, nsamples)

        Returns
        -------
        values : np.ndarray (nsamples)
        """
        self._check_value_coefficients("value")
        samples = np.atleast_2d(samples)
        cache = _BasisCache(self._driver.bases_1d(), samples)
        return self._hierarchical_sum(
            cache, self._data.t1, self._t2_coefficients(), self._full_key(),
            self._all_dims(), [])

    def gradient_basis_variables(self, samples, dvv=None):
        """
        Evaluate the gradient of the interpolant with respect to the
        variables of the expansion.

        Parameters
        ----------
        samples : np.ndarray (nvars, nsamples)

        dvv : iterable
            The variables to differentiate with respect to. Defaults to
            all

        Returns
        -------
        grads : np.ndarray (nsamples, len(dvv))
        """
        self._check_value_coefficients("gradient_basis_variables")
        if dvv is None:
            dvv = self._all_dims()
        samples = np.atleast_2d(samples)
        cache = _BasisCache(self._driver.bases_1d(), samples)
        grads = [self._hierarchical_sum(
            cache, self._data.t1, self._t2_coefficients(), self._full_key(),
            self._all_dims(), [], deriv_dim=dd) for dd in dvv]
        return np.asarray(grads).T

    def gradient_nonbasis_variables(self, samples):
        """
        Evaluate the interpolant of the response gradients with respect to
        variables that are not part of the expansion.

        Returns
        -------
        grads : np.ndarray (nsamples, nderiv_vars)
        """
        self._check_gradient_coefficients("gradient_nonbasis_variables")
        samples = np.atleast_2d(samples)
        cache = _BasisCache(self._driver.bases_1d(), samples)
        return self._hierarchical_sum(
            cache, self._data.t1g, None, self._full_key(), self._all_dims(),
            [])

    def hessian_basis_variables(self, samples):
        raise NotImplementedError(
            "Hessians of hierarchical interpolants are not supported")

    # -- moments ----------------------------------------------------------

    def mean(self, x=None):
        """
        Return the mean of the interpolant. When nonrandom indices are
        specified the mean is a function of the nonrandom variables which
        are fixed at ``x``.
        """
        self._check_value_coefficients("mean")
        x = self._check_x(x)
        stats = self._data.stats
        xnr = self._nonrandom_x(x)
        if stats.is_computed("mean", 1, xnr):
            return stats.numerical_moments[0]
        mean = self._mixed_expectation(
            self._data.t1, self._t2_coefficients(), self._full_key(), x)
        stats.numerical_moments[0] = mean
        stats.set_computed("mean", 1, xnr)
        return mean

    def _nonbasis_column(self, column):
        return [[None if coef is None else coef[column] for coef in sets]
                for sets in self._data.t1g]

    def _default_dvv(self, dvv):
        if dvv is not None:
            return tuple(int(dd) for dd in dvv)
        if not self._all_variables_mode():
            return None
        if self._expcfg.expansion_coeff_grad_flag:
            return tuple(range(self.nvars()))
        return tuple(int(dd) for dd in self._expcfg.nonrandom_indices)

    def mean_gradient(self, x=None, dvv=None):
        """
        Return the gradient of the mean.

        Without nonrandom indices this is the gradient with respect to the
        variables that are not part of the expansion, optionally restricted
        to the entries ``dvv``. With nonrandom indices, entries of ``dvv``
        that are nonrandom variables are differentiated through the
        interpolant and the remaining entries use, in order, the columns of
        the coefficient gradients.
        """
        x = self._check_x(x)
        dvv = self._default_dvv(dvv)
        stats = self._data.stats
        xnr = self._nonrandom_x(x)
        if stats.is_computed("mean", 2, xnr, dvv):
            return stats.mean_gradient
        if x is None:
            self._check_gradient_coefficients("mean_gradient")
            grad = self._expectation(
                self._data.t1g, None, self._full_key())
            if dvv is not None:
                grad = grad[list(dvv)]
        else:
            grad = np.empty(len(dvv))
            cntr = 0
            nonrandom = set(int(dd) for dd in self._expcfg.nonrandom_indices)
            for ii, dd in enumerate(dvv):
                if dd in nonrandom:
                    self._check_value_coefficients("mean_gradient")
                    grad[ii] = self._mixed_expectation(
                        self._data.t1, self._t2_coefficients(),
                        self._full_key(), x, deriv_dim=dd)
                    continue
                self._check_gradient_coefficients("mean_gradient")
                grad[ii] = self._mixed_expectation(
                    self._nonbasis_column(cntr), None, self._full_key(), x)
                cntr += 1
        stats.mean_gradient = grad
        stats.set_computed("mean", 2, xnr, dvv)
        return grad

    def covariance(self, other=None, x=None):
        """
        Return the covariance of this and another expansion built on the
        same driver. The covariance is the expectation of the interpolant
        of the product of the centered responses.
        """
        if other is None:
            other = self
        if other.driver() is not self._driver:
            raise ValueError("other must share the driver of this expansion")
        if other is self:
            return self.variance(x)
        mean1, mean2 = self.mean(x), other.mean(x)
        x = self._check_x(x)
        t1, t2 = self._product_coefficients(other, mean1, mean2)
        return self._mixed_expectation(t1, t2, self._full_key(), x)

    def variance(self, x=None):
        mean = self.mean(x)
        x = self._check_x(x)
        stats = self._data.stats
        xnr = self._nonrandom_x(x)
        if stats.is_computed("variance", 1, xnr):
            return stats.numerical_moments[1]
        t1, t2 = self._product_coefficients(self, mean, mean)
        variance = self._mixed_expectation(t1, t2, self._full_key(), x)
        stats.numerical_moments[1] = variance
        stats.set_computed("variance", 1, xnr)
        return variance

    def variance_gradient(self, x=None, dvv=None):
        """
        Return the gradient of the variance. The entries of ``dvv`` are
        interpreted as in :meth:`mean_gradient`.
        """
        x = self._check_x(x)
        dvv = self._default_dvv(dvv)
        stats = self._data.stats
        xnr = self._nonrandom_x(x)
        if stats.is_computed("variance", 2, xnr, dvv):
            return stats.variance_gradient
        mean = self.mean(x)
        full_key = self._full_key()
        if x is None:
            self._check_gradient_coefficients("variance_gradient")
            full_grad = self.mean_gradient(None, None)

            def values_fun(lev, set_idx, samples):
                vals, grads = self._set_data(lev, set_idx)
                return 2*(vals-mean)[None, :]*(
                    grads-full_grad[:, None]), None

            t1, _ = self._telescope(values_fun, self._set_ends())
            grad = self._expectation(t1, None, full_key)
            if dvv is not None:
                grad = grad[list(dvv)]
        else:
            mean_grad = self.mean_gradient(x, dvv)
            grad = np.empty(len(dvv))
            nonrandom = set(int(dd) for dd in self._expcfg.nonrandom_indices)
            central = None
            cntr = 0
            for ii, dd in enumerate(dvv):
                if dd in nonrandom:
                    # the gradient of E[(R-c)^2] with c fixed at the mean
                    # equals the gradient of the variance
                    if central is None:
                        central = self._product_coefficients(
                            self, mean, mean)
                    grad[ii] = self._mixed_expectation(
                        central[0], central[1], full_key, x, deriv_dim=dd)
                    continue
                self._check_gradient_coefficients("variance_gradient")
                t1, _ = self._telescope(
                    self._variance_gradient_values(
                        mean, cntr, mean_grad[ii]), self._set_ends())
                grad[ii] = self._mixed_expectation(t1, None, full_key, x)
                cntr += 1
        stats.variance_gradient = grad
        stats.set_computed("variance", 2, xnr, dvv)
        return grad

    def _variance_gradient_values(self, mean, column, mean_grad):
        def values_fun(lev, set_idx, samples):
            vals, grads = self._set_data(lev, set_idx)
            return 2*(vals-mean)*(grads[column]-mean_grad), None
        return values_fun

    def integrate_response_moments(self, num_moments=4, x=None):
        """
        Integrate the mean and the central moments of the response up to
        ``num_moments`` using hierarchical interpolants of the powers of
        the centered response.

        Returns
        -------
        moments : np.ndarray (num_moments)
        """
        if num_moments < 1:
            raise ValueError("num_moments must be positive")
        mean = self.mean(x)
        x = self._check_x(x)
        moments = np.zeros(num_moments)
        moments[0] = mean
        for order in range(2, num_moments+1):
            t1, t2 = self._central_moment_coefficients(mean, order)
            moments[order-1] = self._mixed_expectation(
                t1, t2, self._full_key(), x)
        self._data.stats.response_moments = moments
        return moments

    def integrate_expansion_moments(self, num_moments=4, x=None):
        """
        Moments of the interpolant. The points are nested so these equal
        the moments integrated from the response values.
        """
        moments = self._data.stats.response_moments
        if (moments is None or moments.shape[0] != num_moments or
                self._all_variables_mode()):
            moments = self.integrate_response_moments(num_moments, x)
        return moments.copy()

    # -- reference and delta statistics ---------------------------------

    def _ref_key(self, ref_key):
        return self._driver.reference_key() if ref_key is None else ref_key

    def _incr_key(self, incr_key):
        return self._driver.increment_key() if incr_key is None else incr_key

    def reference_mean(self, ref_key=None, x=None):
        """
        Mean of the interpolant restricted to the sets of ``ref_key``,
        which defaults to the sets present before the last refinement.
        """
        self._check_value_coefficients("reference_mean")
        self._check_refinement_control("reference_mean")
        x = self._check_x(x)
        stats = self._data.stats
        xnr = self._nonrandom_x(x)
        use_cache = ref_key is None
        if use_cache and stats.is_computed("ref_mean", 1, xnr):
            return stats.reference_moments[0]
        mean = self._mixed_expectation(
            self._data.t1, self._t2_coefficients(), self._ref_key(ref_key), x)
        if use_cache:
            stats.reference_moments[0] = mean
            stats.set_computed("ref_mean", 1, xnr)
        return mean

    def reference_variance(self, ref_key=None, x=None):
        """Variance of the interpolant restricted to the sets of ref_key."""
        self._check_refinement_control("reference_variance")
        stats = self._data.stats
        mean = self.reference_mean(ref_key, x)
        x = self._check_x(x)
        xnr = self._nonrandom_x(x)
        use_cache = ref_key is None
        if use_cache and stats.is_computed("ref_variance", 1, xnr):
            return stats.reference_moments[1]
        ref_key = self._ref_key(ref_key)
        t1, t2 = self._product_coefficients(
            self, mean, mean, [end for start, end in ref_key])
        variance = self._mixed_expectation(t1, t2, ref_key, x)
        if use_cache:
            stats.reference_moments[1] = variance
            stats.set_computed("ref_variance", 1, xnr)
        return variance

    def delta_mean(self, ref_key=None, incr_key=None, x=None):
        """
        Change in the mean caused by the sets of ``incr_key``, which
        defaults to the sets added by the last refinement.
        """
        self._check_value_coefficients("delta_mean")
        self._check_refinement_control("delta_mean")
        x = self._check_x(x)
        stats = self._data.stats
        xnr = self._nonrandom_x(x)
        use_cache = ref_key is None and incr_key is None
        if use_cache and stats.is_computed("delta_mean", 1, xnr):
            return stats.delta_moments[0]
        delta = self._mixed_expectation(
            self._data.t1, self._t2_coefficients(),
            self._incr_key(incr_key), x)
        if use_cache:
            stats.delta_moments[0] = delta
            stats.set_computed("delta_mean", 1, xnr)
        return delta

    def delta_covariance(self, other=None, ref_key=None, incr_key=None,
                         x=None):
        r"""
        Change in the covariance caused by the sets of ``incr_key``

        .. math::

            \Delta\Sigma = \Delta E[R_1R_2] - \mu_1^0\Delta\mu_2
            - \mu_2^0\Delta\mu_1 - \Delta\mu_1\Delta\mu_2
        """
        if other is None:
            other = self
        if other.driver() is not self._driver:
            raise ValueError("other must share the driver of this expansion")
        ref_mean1 = self.reference_mean(ref_key, x)
        ref_mean2 = other.reference_mean(ref_key, x)
        delta_mean1 = self.delta_mean(ref_key, incr_key, x)
        delta_mean2 = other.delta_mean(ref_key, incr_key, x)
        x = self._check_x(x)
        ref_key, incr_key = self._ref_key(ref_key), self._incr_key(incr_key)
        set_ends = [max(ref[1], incr[1]) for ref, incr in zip(
            ref_key, incr_key)]
        t1, t2 = self._product_coefficients(other, 0., 0., set_ends)
        delta_prod = self._mixed_expectation(t1, t2, incr_key, x)
        return (delta_prod-ref_mean1*delta_mean2-ref_mean2*delta_mean1 -
                delta_mean1*delta_mean2)

    def delta_variance(self, ref_key=None, incr_key=None, x=None):
        self._check_refinement_control("delta_variance")
        stats = self._data.stats
        xnr = self._nonrandom_x(self._check_x(x))
        use_cache = ref_key is None and incr_key is None
        if use_cache and stats.is_computed("delta_variance", 1, xnr):
            return stats.delta_moments[1]
        delta = self.delta_covariance(self, ref_key, incr_key, x)
        if use_cache:
            stats.delta_moments[1] = delta
            stats.set_computed("delta_variance", 1, xnr)
        return delta

    def delta_std_deviation(self, ref_key=None, incr_key=None, x=None):
        """
        Change in the standard deviation, computed without cancellation
        when the change in variance is small.
        """
        variance = self.reference_variance(ref_key, x)
        delta_variance = self.delta_variance(ref_key, incr_key, x)
        return delta_std_deviation_map(variance, delta_variance)

    def delta_beta(self, cdf_flag, z_bar, ref_key=None, incr_key=None,
                   x=None):
        """
        Change in the reliability index of the response level ``z_bar``.
        """
        mean = self.reference_mean(ref_key, x)
        variance = self.reference_variance(ref_key, x)
        delta_mean = self.delta_mean(ref_key, incr_key, x)
        delta_sigma = self.delta_std_deviation(ref_key, incr_key, x)
        return delta_beta_map(
            mean, delta_mean, variance, delta_sigma, cdf_flag, z_bar)

    def delta_z(self, cdf_flag, beta_bar, ref_key=None, incr_key=None,
                x=None):
        """
        Change in the response level of the reliability index
        ``beta_bar``.
        """
        delta_mean = self.delta_mean(ref_key, incr_key, x)
        delta_sigma = self.delta_std_deviation(ref_key, incr_key, x)
        return delta_z_map(delta_mean, delta_sigma, cdf_flag, beta_bar)

    # -- Sobol' indices -------------------------------------------------

    def _total_mean_variance(self):
        """Mean and variance integrated over all the variables."""
        if not self._all_variables_mode():
            return self.mean(), self.variance()
        full_key = self._full_key()
        t2 = self._t2_coefficients()
        mean = self._expectation(self._data.t1, t2, full_key)
        t1c, t2c = self._product_coefficients(self, mean, mean)
        return mean, self._expectation(t1c, t2c, full_key)

    def _member_coefficients(self, subset):
        """
        Integrate out the variables not in ``subset`` to obtain the
        surpluses of the member interpolant, which only depends on the
        variables in ``subset``.

        The non-member weights of each point multiply its surpluses and
        points sharing the same member coordinates are accumulated.

        Returns
        -------
        m_t1 : list
            Nested np.ndarray (nmember_pts)

        m_t2 : list
            Nested np.ndarray (nvars, nmember_pts), None if not used

        m_key : list
            Nested np.ndarray (nmember_pts, nvars) whose non-member columns
            are zero
        """
        members = list(subset)
        nonmembers = [dd for dd in self._all_dims() if dd not in subset]
        bases_1d = self._driver.bases_1d()
        smolyak_mi = self._driver.smolyak_multi_index()
        colloc_key = self._driver.collocation_key()
        data = self._data
        use_derivs = self._use_derivs()
        m_t1, m_key = [], []
        m_t2 = [] if use_derivs else None
        for lev in range(len(data.t1)):
            m_t1.append([])
            m_key.append([])
            if use_derivs:
                m_t2.append([])
            for set_idx in range(len(data.t1[lev])):
                index = smolyak_mi[lev][set_idx]
                key = colloc_key[lev][set_idx]
                nonmember_wts = np.ones(key.shape[0])
                for dd in nonmembers:
                    nonmember_wts *= bases_1d[dd].type1_weights(
                        index[dd])[key[:, dd]]
                coef = data.t1[lev][set_idx]*nonmember_wts
                if use_derivs:
                    for vv in nonmembers:
                        wts = np.ones(key.shape[0])
                        for dd in nonmembers:
                            if dd == vv:
                                wts *= bases_1d[dd].type2_weights(
                                    index[dd])[key[:, dd]]
                            else:
                                wts *= bases_1d[dd].type1_weights(
                                    index[dd])[key[:, dd]]
                        coef = coef+data.t2[lev][set_idx][vv]*wts
                unique_keys, inverse = np.unique(
                    key[:, members], axis=0, return_inverse=True)
                inverse = inverse.reshape(-1)
                member_t1 = np.zeros(unique_keys.shape[0])
                np.add.at(member_t1, inverse, coef)
                m_t1[lev].append(member_t1)
                member_key = np.zeros(
                    (unique_keys.shape[0], self.nvars()), dtype=int)
                member_key[:, members] = unique_keys
                m_key[lev].append(member_key)
                if use_derivs:
                    member_t2 = np.zeros((self.nvars(), unique_keys.shape[0]))
                    for vv in members:
                        np.add.at(member_t2[vv], inverse,
                                  data.t2[lev][set_idx][vv]*nonmember_wts)
                    m_t2[lev].append(member_t2)
        return m_t1, m_t2, m_key

    def _member_central_moment(self, subset, center):
        r"""
        Return :math:`E[(h-c)^2]` where :math:`h` is the member interpolant
        of ``subset``.
        """
        members = list(subset)
        m_t1, m_t2, m_key = self._member_coefficients(subset)
        bases_1d = self._driver.bases_1d()
        member_key = self._full_key(m_t1)
        use_derivs = self._use_derivs()

        def values_fun(lev, set_idx, samples):
            cache = _BasisCache(bases_1d, samples)
            vals = self._hierarchical_sum(
                cache, m_t1, m_t2, member_key, members, [], colloc_key=m_key)
            if not use_derivs:
                return (vals-center)**2, None
            grads = np.zeros((self.nvars(), samples.shape[1]))
            for vv in members:
                grads[vv] = 2*(vals-center)*self._hierarchical_sum(
                    cache, m_t1, m_t2, member_key, members, [],
                    deriv_dim=vv, colloc_key=m_key)
            return (vals-center)**2, grads

        p_t1, p_t2 = self._telescope(
            values_fun, [len(sets) for sets in m_t1], with_t2=use_derivs,
            dims=members, colloc_key=m_key)
        return self._hierarchical_sum(
            None, p_t1, p_t2, member_key, [], members, colloc_key=m_key)[0]

    def compute_partial_variance(self, subset, partial_variances=None):
        """
        Return the variance attributable to the interaction of exactly the
        variables in ``subset``.

        Parameters
        ----------
        subset : iterable
            The interacting variables

        partial_variances : dict
            Partial variances already computed, keyed by sorted tuples of
            variables. The empty tuple holds the squared mean. Updated in
            place.
        """
        subset = tuple(sorted(int(dd) for dd in subset))
        if partial_variances is None:
            mean = self._total_mean_variance()[0]
            partial_variances = {(): mean**2}
        if subset in partial_variances:
            return partial_variances[subset]
        variance = self._member_central_moment(subset, 0.)
        for nmembers in range(len(subset)):
            for sub in itertools.combinations(subset, nmembers):
                variance -= self.compute_partial_variance(
                    sub, partial_variances)
        partial_variances[subset] = variance
        return variance

    def compute_component_sobol(self):
        """
        Compute the Sobol' index of every interaction represented by the
        index sets.
        """
        self._check_value_coefficients("compute_component_sobol")
        self.allocate_component_sobol()
        mean, variance = self._total_mean_variance()
        self._sobol_indices = np.zeros(len(self._sobol_index_map))
        if variance <= SMALL_NUMBER:
            return self._sobol_indices
        partial_variances = {(): mean**2}
        for interaction, idx in self._sobol_index_map.items():
            self._sobol_indices[idx] = self.compute_partial_variance(
                interaction, partial_variances)/variance
        return self._sobol_indices

    def compute_total_sobol(self):
        """
        Compute the total effect of every variable, one minus the fraction
        of the variance explained by the remaining variables.
        """
        self._check_value_coefficients("compute_total_sobol")
        mean, variance = self._total_mean_variance()
        self._total_sobol_indices = np.zeros(self.nvars())
        if variance <= SMALL_NUMBER:
            return self._total_sobol_indices
        for dd in range(self.nvars()):
            complement = tuple(
                vv for vv in range(self.nvars()) if vv != dd)
            if len(complement) == 0:
                complement_variance = 0.
            else:
                complement_variance = self._member_central_moment(
                    complement, mean)
            self._total_sobol_indices[dd] = 1-complement_variance/variance
        return self._total_sobol_indices

    def __repr__(self):
        return "{0}(nvars={1}, key={2}, use_derivs={3})".format(
            self.__class__.__name__, self.nvars(), self._active_key,
            self._use_derivs())
