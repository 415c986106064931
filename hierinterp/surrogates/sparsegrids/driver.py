import logging

import numpy as np
from mpl_toolkits.mplot3d import Axes3D

from hierinterp.util.utilities import (
    cartesian_product, hash_array, outer_product)
from hierinterp.surrogates.bases.univariate import (
    UnivariateHierarchicalBasis,
)
from hierinterp.surrogates.bases.multiindex import (
    compute_hyperbolic_level_indices,
    get_forward_neighbor,
    indices_are_downward_closed,
    is_admissible,
    plot_indices,
    sort_indices_lexiographically,
)


logger = logging.getLogger(__name__)


class HierarchSparseGridDriver(object):
    r"""
    Owner of the nested index-set hierarchy of a hierarchical sparse grid.

    Index sets are grouped by level, where the level of a set is its l1
    norm. Each set owns the tensor product of the points first introduced
    at its per-dimension levels (the delta points). For every set the driver
    stores

    - the Smolyak multi-index, ``np.ndarray (nvars)``
    - the collocation key, ``np.ndarray (npts, nvars)``, whose entries are the
      indices of the points within the 1D rule of the level of each dimension
    - the collocation indices, ``np.ndarray (npts)``, the location of each
      point in the sample store. Indices are assigned from a running counter
      in the order sets enter the grid.
    - the type-1 integration weights, ``np.ndarray (npts)``, and, for
      gradient-enhanced grids, the type-2 weights ``np.ndarray (nvars, npts)``

    The driver is shared by the expansions of every response quantity.
    Only the refinement loop mutates it.

    Parameters
    ----------
    bases_1d : list
        One :class:`UnivariateHierarchicalBasis` per variable

    use_derivs : boolean
        Compute the type-2 weights needed by gradient-enhanced interpolants

    admissibility_fun : callable
        Function with signature ``admissibility_fun(index) -> bool`` used
        to restrict the candidate sets of a dimension adaptive refinement
    """

    def __init__(self, bases_1d, use_derivs=False, admissibility_fun=None):
        for basis in bases_1d:
            if not isinstance(basis, UnivariateHierarchicalBasis):
                raise ValueError(
                    "bases_1d must contain instances of "
                    "UnivariateHierarchicalBasis")
        if len(bases_1d) == 0:
            raise ValueError("Must provide at least one basis")
        self._bases_1d = bases_1d
        self._use_derivs = use_derivs
        self._admis_fun = admissibility_fun
        self._clear()

    def _clear(self):
        self._smolyak_mi = []
        self._colloc_key = []
        self._colloc_indices = []
        self._t1_wts = []
        self._t2_wts = []
        self._increment_sets = []
        self._npoints = 0
        self._trial_set = None
        self._trial_set_active = False
        # candidate sets keyed by hash
        self._cand_sets = dict()
        # weights of candidate sets that have been evaluated and withdrawn
        self._popped_sets = dict()
        self._computed_trial_sets = []
        self._finalization_sets = []

    def nvars(self):
        return len(self._bases_1d)

    def bases_1d(self):
        return self._bases_1d

    def use_derivs(self):
        return self._use_derivs

    def nlevels(self):
        return len(self._smolyak_mi)

    def npoints(self):
        return self._npoints

    def nsets(self):
        return [len(sets) for sets in self._smolyak_mi]

    def smolyak_multi_index(self):
        return self._smolyak_mi

    def collocation_key(self):
        return self._colloc_key

    def collocation_indices(self):
        return self._colloc_indices

    def type1_weight_set_arrays(self):
        return self._t1_wts

    def type2_weight_set_arrays(self):
        return self._t2_wts

    def trial_set(self):
        return self._trial_set

    def trial_level(self):
        if self._trial_set is None:
            raise RuntimeError("No trial set has been pushed")
        return int(self._trial_set.sum())

    def increment_sets(self):
        """
        The number of sets on each level before the latest refinement.
        """
        return self._increment_sets

    def reference_key(self):
        """
        The range of sets on each level that existed before the latest
        refinement, as a list of [start, end) pairs.
        """
        return [[0, self._increment_sets[lev]]
                for lev in range(self.nlevels())]

    def increment_key(self):
        """
        The range of sets on each level added by the latest refinement.
        """
        return [[self._increment_sets[lev], len(self._smolyak_mi[lev])]
                for lev in range(self.nlevels())]

    def _set_collocation_key(self, index):
        delta_indices = [
            self._bases_1d[dd].delta_indices(index[dd])
            for dd in range(self.nvars())]
        return np.asarray(cartesian_product(delta_indices).T, dtype=int)

    def _compute_set_weights(self, index):
        delta_indices = [
            self._bases_1d[dd].delta_indices(index[dd])
            for dd in range(self.nvars())]
        t1_wts_1d = [
            self._bases_1d[dd].type1_weights(index[dd])[delta_indices[dd]]
            for dd in range(self.nvars())]
        t1_wts = outer_product(t1_wts_1d)
        if not self._use_derivs:
            return t1_wts, None
        t2_wts = []
        for vv in range(self.nvars()):
            wts_1d = [wts for wts in t1_wts_1d]
            wts_1d[vv] = self._bases_1d[vv].type2_weights(
                index[vv])[delta_indices[vv]]
            t2_wts.append(outer_product(wts_1d))
        return t1_wts, np.asarray(t2_wts)

    def _append_set(self, index, weights=None):
        lev = int(index.sum())
        while self.nlevels() <= lev:
            self._smolyak_mi.append([])
            self._colloc_key.append([])
            self._colloc_indices.append([])
            self._t1_wts.append([])
            self._t2_wts.append([])
            self._increment_sets.append(0)
        key = self._set_collocation_key(index)
        npts = key.shape[0]
        if weights is None:
            weights = self._compute_set_weights(index)
        self._smolyak_mi[lev].append(np.array(index, dtype=int))
        self._colloc_key[lev].append(key)
        self._colloc_indices[lev].append(
            np.arange(self._npoints, self._npoints+npts))
        self._t1_wts[lev].append(weights[0])
        if weights[1] is not None:
            self._t2_wts[lev].append(weights[1])
        self._npoints += npts
        return lev

    def _pop_set(self, lev):
        index = self._smolyak_mi[lev].pop()
        self._colloc_key[lev].pop()
        indices = self._colloc_indices[lev].pop()
        t1_wts = self._t1_wts[lev].pop()
        t2_wts = self._t2_wts[lev].pop() if self._use_derivs else None
        self._npoints -= indices.shape[0]
        return index, (t1_wts, t2_wts)

    def _active_set_keys(self):
        return set(hash_array(index) for sets in self._smolyak_mi
                   for index in sets)

    def _record_increment_sets(self):
        self._increment_sets = self.nsets()

    def initialize_grid(self, level, pnorm=1):
        """
        Build an isotropic grid containing all sets whose p-norm is no
        larger than ``level``.
        """
        self._clear()
        for lev in range(level+1):
            for index in compute_hyperbolic_level_indices(
                    self.nvars(), lev, pnorm).T:
                self._append_set(index)
        self._level = level
        self._pnorm = pnorm
        self._increment_sets = [0 for lev in range(self.nlevels())]
        logger.debug("initialized grid with %d sets and %d points",
                     sum(self.nsets()), self._npoints)

    def initialize_from_sets(self, indices):
        """
        Build a grid from a downward closed set of multi-indices.

        Parameters
        ----------
        indices : np.ndarray (nvars, nindices)
        """
        indices = np.asarray(indices, dtype=int)
        if indices.ndim != 2 or indices.shape[0] != self.nvars():
            raise ValueError("indices must be a 2D array with nrows=nvars")
        if not indices_are_downward_closed(indices):
            raise ValueError("indices were not downward closed")
        self._clear()
        for index in sort_indices_lexiographically(indices).T:
            self._append_set(index)
        self._level = self.nlevels()-1
        self._pnorm = 1
        self._increment_sets = [0 for lev in range(self.nlevels())]

    def increment_level(self):
        """
        Uniformly refine the grid by adding every admissible set of the
        next level.
        """
        if self.nlevels() == 0:
            raise RuntimeError("must first call initialize_grid")
        self._record_increment_sets()
        self._level += 1
        active_keys = self._active_set_keys()
        new_indices = []
        for lev in range(self._level+1):
            for index in compute_hyperbolic_level_indices(
                    self.nvars(), lev, self._pnorm).T:
                if hash_array(index) not in active_keys:
                    new_indices.append(index)
        for index in new_indices:
            self._append_set(index)
        while len(self._increment_sets) < self.nlevels():
            self._increment_sets.append(0)
        logger.debug("incremented grid to level %d, %d new sets",
                     self._level, len(new_indices))
        return new_indices

    def initialize_sets(self):
        """
        Compute the candidate sets for generalized dimension adaptive
        refinement: the admissible forward neighbors of the active sets.
        """
        if self.nlevels() == 0:
            raise RuntimeError("must first call initialize_grid")
        self._cand_sets = dict()
        self._popped_sets = dict()
        self._computed_trial_sets = []
        self._record_increment_sets()
        active_keys = self._active_set_keys()
        for sets in self._smolyak_mi:
            for index in sets:
                self._add_candidates(index, active_keys)

    def _add_candidates(self, index, active_keys):
        for dim_id in range(self.nvars()):
            neighbor = get_forward_neighbor(index, dim_id)
            key = hash_array(neighbor)
            if key in self._cand_sets:
                continue
            if not is_admissible(neighbor, active_keys):
                continue
            if self._admis_fun is not None and not self._admis_fun(neighbor):
                continue
            self._cand_sets[key] = neighbor

    def candidate_sets(self):
        return sort_indices_lexiographically(
            np.asarray(list(self._cand_sets.values()), dtype=int).T) \
            if len(self._cand_sets) > 0 else np.empty(
                (self.nvars(), 0), dtype=int)

    def computed_trial_set(self, index):
        """Return True if ``index`` was evaluated and then withdrawn."""
        return tuple(int(ii) for ii in index) in self._popped_sets

    def push_trial_set(self, index):
        """
        Append a candidate set to the grid as the trial set. If the set was
        evaluated before, its saved weights are restored.
        """
        index = np.asarray(index, dtype=int)
        if index.shape != (self.nvars(),):
            raise ValueError("index has the wrong shape")
        if self._trial_set is not None and self._trial_set_active:
            raise RuntimeError(
                "trial set {0} must be popped or merged first".format(
                    self._trial_set))
        weights = self._popped_sets.pop(tuple(int(ii) for ii in index), None)
        self._append_set(index, weights)
        self._trial_set = index
        self._trial_set_active = True
        logger.debug("pushed trial set %s", index)

    def restore_set(self, index):
        if not self.computed_trial_set(index):
            raise RuntimeError(
                "set {0} was not previously evaluated".format(index))
        self.push_trial_set(index)

    def pop_trial_set(self):
        """Withdraw the trial set, saving its weights for later reuse."""
        if self._trial_set is None or not self._trial_set_active:
            raise RuntimeError("No trial set has been pushed")
        lev = self.trial_level()
        if (len(self._smolyak_mi[lev]) == 0 or not np.array_equal(
                self._smolyak_mi[lev][-1], self._trial_set)):
            raise RuntimeError(
                "trial set {0} is not the last set of level {1}".format(
                    self._trial_set, lev))
        index, weights = self._pop_set(lev)
        key = tuple(int(ii) for ii in index)
        self._popped_sets[key] = weights
        if key not in self._computed_trial_sets:
            self._computed_trial_sets.append(key)
        self._trial_set_active = False
        logger.debug("popped trial set %s", index)

    def merge_set(self):
        """
        Accept the active trial set permanently and add its admissible
        forward neighbors to the candidates.
        """
        if self._trial_set is None or not self._trial_set_active:
            raise RuntimeError("No trial set has been pushed")
        key = tuple(int(ii) for ii in self._trial_set)
        self._cand_sets.pop(hash_array(self._trial_set), None)
        if key in self._computed_trial_sets:
            self._computed_trial_sets.remove(key)
        self._add_candidates(self._trial_set, self._active_set_keys())
        self._record_increment_sets()
        self._trial_set_active = False
        logger.debug("merged set %s", self._trial_set)

    def finalize_sets(self):
        """
        Append every evaluated but unaccepted candidate set to the grid in
        the order they were first evaluated.
        """
        self._record_increment_sets()
        self._finalization_sets = []
        for key in self._computed_trial_sets:
            if key not in self._popped_sets:
                continue
            index = np.asarray(key, dtype=int)
            self._append_set(index, self._popped_sets.pop(key))
            self._cand_sets.pop(hash_array(index), None)
            self._finalization_sets.append(index)
        self._computed_trial_sets = []
        self._popped_sets = dict()
        self._trial_set = None
        self._trial_set_active = False
        while len(self._increment_sets) < self.nlevels():
            self._increment_sets.append(0)
        logger.debug("finalized %d sets", len(self._finalization_sets))

    def finalization_sets(self):
        return self._finalization_sets

    def set_samples(self, lev, set_idx):
        """
        Return the coordinates of the points of one set.

        Returns
        -------
        samples : np.ndarray (nvars, npts)
        """
        index = self._smolyak_mi[lev][set_idx]
        key = self._colloc_key[lev][set_idx]
        samples = np.empty((self.nvars(), key.shape[0]))
        for dd in range(self.nvars()):
            samples[dd] = self._bases_1d[dd].nodes(index[dd])[key[:, dd]]
        return samples

    def level_range_samples(self, key):
        """
        Return the coordinates of the points of the sets in a [start, end)
        range of each level, in the order the points entered the grid.
        """
        samples, indices = [], []
        for lev in range(self.nlevels()):
            for set_idx in range(key[lev][0], key[lev][1]):
                samples.append(self.set_samples(lev, set_idx))
                indices.append(self._colloc_indices[lev][set_idx])
        if len(samples) == 0:
            return np.empty((self.nvars(), 0))
        samples = np.hstack(samples)
        return samples[:, np.argsort(np.hstack(indices))]

    def train_samples(self):
        """All active points ordered by collocation index."""
        return self.level_range_samples(
            [[0, len(sets)] for sets in self._smolyak_mi])

    def __repr__(self):
        return "{0}(nvars={1}, nlevels={2}, npoints={3})".format(
            self.__class__.__name__, self.nvars(), self.nlevels(),
            self.npoints())

    def _plot_grid_1d(self, ax):
        ax.plot(self.train_samples()[0], self.train_samples()[0]*0, "o")

    def _plot_grid_2d(self, ax):
        ax.plot(*self.train_samples(), "o")

    def _plot_grid_3d(self, ax):
        if not isinstance(ax, Axes3D):
            raise ValueError(
                "ax must be an instance of  mpl_toolkits.mplot3d.Axes3D"
            )
        ax.plot(*self.train_samples(), "o")

    def plot_grid(self, ax):
        if self.nvars() > 3:
            raise RuntimeError("Cannot plot grid when nvars > 3.")

        plot_grid_funs = {
            1: self._plot_grid_1d,
            2: self._plot_grid_2d,
            3: self._plot_grid_3d,
        }
        plot_grid_funs[self.nvars()](ax)

    def plot_sets(self, ax):
        indices = np.asarray(
            [index for sets in self._smolyak_mi for index in sets]).T
        cand_indices = self.candidate_sets()
        if cand_indices.shape[1] == 0:
            cand_indices = None
        plot_indices(ax, indices, cand_indices)
