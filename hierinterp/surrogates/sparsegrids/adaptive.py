import heapq
import logging
from abc import ABC, abstractmethod

import numpy as np

from hierinterp.surrogates.sparsegrids.options import (
    DIMENSION_ADAPTIVE_CONTROL_GENERALIZED,
)
from hierinterp.surrogates.sparsegrids.surrdata import SurrogateData


logger = logging.getLogger(__name__)


class PriorityQueue:
    def __init__(self):
        self.list = []

    def empty(self):
        return len(self.list) == 0

    def put(self, item):
        if len(item) != 3:
            raise ValueError("must provide list with 3 entries")
        heapq.heappush(self.list, item)

    def get(self):
        item = heapq.heappop(self.list)
        return item

    def __eq__(self, other):
        return other.list == self.list

    def __ne__(self, other):
        return not self.__eq__(other)

    def __repr__(self):
        return str(self.list)

    def __len__(self):
        return len(self.list)


class RefinementCriteria(ABC):
    """
    Score a trial index set that has been added to the grid and whose
    coefficients have been incremented.
    """

    def __init__(self):
        self._approxs = None

    def set_approximations(self, approxs):
        self._approxs = approxs

    def cost_per_sample(self, index_set):
        return 1

    @abstractmethod
    def _error(self, index_set):
        raise NotImplementedError

    def __call__(self, index_set, npts):
        """
        Returns
        -------
        priority : float
            The priority of the set. Smaller values are refined first.

        error : float
            The error indicator of the set
        """
        error = self._error(index_set)
        # divide by the cost so sets that need less new data are preferred
        priority = -error/(npts*self.cost_per_sample(index_set))
        return priority, error

    def __repr__(self):
        return "{0}".format(self.__class__.__name__)


class LevelRefinementCriteria(RefinementCriteria):
    def _error(self, index_set):
        return np.inf

    def __call__(self, index_set, npts):
        # add sets with lower l1 norm first
        return float(np.sum(index_set)), np.inf


class DeltaCovarianceRefinementCriteria(RefinementCriteria):
    """
    The norm of the change in the covariance matrix of all the responses.
    """

    def _error(self, index_set):
        nqoi = len(self._approxs)
        delta = np.empty((nqoi, nqoi))
        for ii in range(nqoi):
            for jj in range(ii, nqoi):
                delta[ii, jj] = self._approxs[ii].delta_covariance(
                    self._approxs[jj])
                delta[jj, ii] = delta[ii, jj]
        return np.linalg.norm(delta)


class DeltaBetaRefinementCriteria(RefinementCriteria):
    """
    The norm of the change in the reliability indices of a response level
    of each response.

    Parameters
    ----------
    z_bar : iterable
        The response level of each response

    cdf_flag : boolean
        Use the reliability index of the CDF (True) or CCDF (False)
    """

    def __init__(self, z_bar, cdf_flag=True):
        super().__init__()
        self._z_bar = np.atleast_1d(z_bar)
        self._cdf_flag = cdf_flag

    def _error(self, index_set):
        if self._z_bar.shape[0] != len(self._approxs):
            raise ValueError("must provide one z_bar per approximation")
        delta = [approx.delta_beta(self._cdf_flag, z_bar)
                 for approx, z_bar in zip(self._approxs, self._z_bar)]
        return np.linalg.norm(delta)


class AdaptiveHierarchicalSparseGrid(object):
    r"""
    Refine a hierarchical sparse grid and the hierarchical interpolants of
    one or more responses built on it.

    Each interpolant owns a private sample store, so withdrawing a trial
    set removes its points from the store.

    Parameters
    ----------
    driver : :class:`HierarchSparseGridDriver`
        The sparse grid. Only this class modifies it.

    approxs : list
        One :class:`HierarchInterpPolyApproximation` per response

    fun : callable
        Function with signature

        ``fun(samples) -> np.ndarray (nsamples, nqoi)``

        where samples is np.ndarray (nvars, nsamples)

    grad_fun : callable
        Function with signature

        ``grad_fun(samples) -> np.ndarray (nqoi, ngrad_vars, nsamples)``

        Required when the interpolants use gradients

    refine_criteria : :class:`RefinementCriteria`
        Used to choose between candidate sets. Defaults to
        :class:`DeltaCovarianceRefinementCriteria`

    key : hashable
        The expansion key of the interpolants

    verbosity : integer
        Log the refinement progress when greater than zero
    """

    def __init__(self, driver, approxs, fun, grad_fun=None,
                 refine_criteria=None, key=0, verbosity=0):
        for approx in approxs:
            if approx.driver() is not driver:
                raise ValueError("approxs must be built on driver")
        self._driver = driver
        self._approxs = approxs
        self._fun = fun
        self._grad_fun = grad_fun
        if refine_criteria is None:
            refine_criteria = DeltaCovarianceRefinementCriteria()
        if not isinstance(refine_criteria, RefinementCriteria):
            raise ValueError(
                "refine_criteria must be an instance of RefinementCriteria")
        self._refine_criteria = refine_criteria
        self._refine_criteria.set_approximations(approxs)
        self._key = key
        self.verbosity = verbosity
        self._nsamples = 0
        self._last_error = np.inf
        self._stores_initialized = False

    def nsamples(self):
        return self._nsamples

    def approximations(self):
        return self._approxs

    def _evaluate(self, samples):
        values = np.asarray(self._fun(samples), dtype=float)
        if values.ndim == 1:
            values = values[:, None]
        if values.shape != (samples.shape[1], len(self._approxs)):
            raise ValueError(
                "fun must return np.ndarray (nsamples, nqoi) with "
                "nqoi={0}".format(len(self._approxs)))
        grads = None
        if self._grad_fun is not None:
            grads = np.asarray(self._grad_fun(samples), dtype=float)
            if grads.ndim != 3 or grads.shape[0] != len(self._approxs):
                raise ValueError(
                    "grad_fun must return np.ndarray "
                    "(nqoi, ngrad_vars, nsamples)")
        return values, grads

    def _initialize_stores(self, grads):
        ngrad_vars = 0 if grads is None else grads.shape[1]
        for approx in self._approxs:
            approx.set_active_key(
                self._key, SurrogateData(self._driver.nvars(), ngrad_vars),
                private_data=True)
        self._stores_initialized = True

    def _append_data(self, samples):
        values, grads = self._evaluate(samples)
        if not self._stores_initialized:
            self._initialize_stores(grads)
        for ii, approx in enumerate(self._approxs):
            approx.surrogate_data().append(
                samples, values[:, ii], None if grads is None else grads[ii])
        self._nsamples += samples.shape[1]

    def initialize(self, level=0, pnorm=1):
        """
        Build an isotropic grid of level ``level`` and compute the
        coefficients of every interpolant.
        """
        self._driver.initialize_grid(level, pnorm)
        self._append_data(self._driver.train_samples())
        for approx in self._approxs:
            approx.compute_coefficients()
        if self._adaptive():
            self._driver.initialize_sets()
        if self.verbosity > 0:
            logger.info("initial grid has %d points", self._nsamples)

    def _adaptive(self):
        controls = set(
            approx.expansion_config_options().refinement_control
            for approx in self._approxs)
        if len(controls) != 1:
            raise ValueError("approxs must use the same refinement_control")
        return controls.pop() == DIMENSION_ADAPTIVE_CONTROL_GENERALIZED

    def refine_uniformly(self, nlevels=1):
        """
        Increase the level of the grid ``nlevels`` times, adding every
        admissible set of each new level.
        """
        if self._adaptive():
            raise RuntimeError(
                "refine_uniformly cannot be used with dimension adaptive "
                "refinement_control")
        for it in range(nlevels):
            self._driver.increment_level()
            samples = self._driver.level_range_samples(
                self._driver.increment_key())
            self._append_data(samples)
            for approx in self._approxs:
                approx.increment_coefficients()
            if self.verbosity > 0:
                logger.info("refined grid to %d points", self._nsamples)

    def _push_candidate(self, index_set):
        lev = int(np.sum(index_set))
        if self._driver.computed_trial_set(index_set):
            self._driver.restore_set(index_set)
            for approx in self._approxs:
                approx.push_coefficients(index_set)
        else:
            self._driver.push_trial_set(index_set)
            set_idx = len(self._driver.smolyak_multi_index()[lev])-1
            self._append_data(self._driver.set_samples(lev, set_idx))
            for approx in self._approxs:
                approx.increment_coefficients()
        return self._driver.collocation_key()[lev][-1].shape[0]

    def _pop_candidate(self):
        self._driver.pop_trial_set()
        for approx in self._approxs:
            approx.decrement_coefficients()

    def _prioritize_candidate_sets(self, cand_sets):
        queue = PriorityQueue()
        for idx, index_set in enumerate(cand_sets.T):
            npts = self._push_candidate(index_set)
            priority, error = self._refine_criteria(index_set, npts)
            queue.put((priority, error, idx))
            self._pop_candidate()
            if self.verbosity > 1:
                logger.info("candidate %s priority %g error %g",
                            index_set, priority, error)
        return queue

    def step(self):
        """
        Evaluate every candidate set and accept the one with the highest
        priority.

        Returns
        -------
        refined : boolean
            False if there were no candidate sets
        """
        if not self._adaptive():
            raise RuntimeError(
                "step requires dimension adaptive refinement_control")
        cand_sets = self._driver.candidate_sets()
        if cand_sets.shape[1] == 0:
            return False
        queue = self._prioritize_candidate_sets(cand_sets)
        priority, error, best_idx = queue.get()
        best_set = cand_sets[:, best_idx]
        self._push_candidate(best_set)
        self._driver.merge_set()
        self._last_error = error
        if self.verbosity > 0:
            logger.info("accepted set %s with error %g, %d points",
                        best_set, error, self._nsamples)
        return True

    def build(self, max_nsamples=np.inf, tol=0., max_steps=np.inf):
        """
        Refine until the error of the accepted set is no larger than
        ``tol``, ``max_nsamples`` have been evaluated, ``max_steps`` have
        been taken or no candidates remain.
        """
        nsteps = 0
        while (self._nsamples < max_nsamples and nsteps < max_steps and
               self.step()):
            nsteps += 1
            if self._last_error <= tol:
                break
        return nsteps

    def finalize(self):
        """Add every evaluated candidate set to the grid."""
        if not self._adaptive():
            raise RuntimeError(
                "finalize requires dimension adaptive refinement_control")
        self._driver.finalize_sets()
        for approx in self._approxs:
            approx.finalize_coefficients()
        if self.verbosity > 0:
            logger.info("finalized grid with %d sets",
                        sum(self._driver.nsets()))

    def __repr__(self):
        return "{0}(nqoi={1}, nsamples={2})".format(
            self.__class__.__name__, len(self._approxs), self._nsamples)
