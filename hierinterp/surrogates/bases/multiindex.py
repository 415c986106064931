from abc import ABC, abstractmethod
import itertools

import numpy as np
from mpl_toolkits.mplot3d import Axes3D

from hierinterp.util.utilities import hash_array


def _unique_values_per_row(a):
    N = a.max()+1
    a_offs = a + np.arange(a.shape[0])[:, None]*N
    return np.bincount(a_offs.ravel(), minlength=a.shape[0]*N).reshape(-1, N)


def _compute_hyperbolic_level_indices(nvars, level, pnorm):
    eps = 1000 * np.finfo(np.double).eps
    if level == 0:
        return np.zeros((nvars, 1), dtype=int)
    tmp = np.asarray(
        list(itertools.combinations_with_replacement(np.arange(nvars), level)))
    # count number of times each variable appears in each combination
    indices = _unique_values_per_row(tmp).T
    if indices.shape[0] < nvars:
        indices = np.vstack(
            (indices, np.zeros((nvars-indices.shape[0], indices.shape[1]),
                               dtype=int)))
    p_norms = np.sum(indices**pnorm, axis=0)**(1.0/pnorm)
    II = np.where(p_norms <= level+eps)[0]
    return np.asarray(indices[:, II], dtype=int)


def compute_hyperbolic_level_indices(nvars, level, pnorm=1):
    """
    Return the multi-indices with l1 norm exactly ``level`` whose p-norm
    is no larger than ``level``.

    Returns
    -------
    indices : np.ndarray (nvars, nindices)
    """
    return sort_indices_lexiographically(
        _compute_hyperbolic_level_indices(nvars, level, pnorm))


def compute_hyperbolic_indices(nvars, max_level, pnorm=1):
    indices = np.empty((nvars, 0), dtype=int)
    for dd in range(max_level+1):
        new_indices = _compute_hyperbolic_level_indices(nvars, dd, pnorm)
        indices = np.hstack((indices, new_indices))
    return indices


def sort_indices_lexiographically(indices):
    r"""
    Sort by level then lexiographically
    The last key in the sequence is used for the primary sort order,
    the second-to-last key for the secondary sort order, and so on
    """
    index_tuple = (indices[0, :],)
    for ii in range(1, indices.shape[0]):
        index_tuple = index_tuple+(indices[ii, :],)
    index_tuple = index_tuple+(indices.sum(axis=0),)
    II = np.lexsort(index_tuple)
    return indices[:, II]


def get_forward_neighbor(index, dim_id):
    neighbor = np.array(index, dtype=int, copy=True)
    neighbor[dim_id] += 1
    return neighbor


def get_backward_neighbor(index, dim_id):
    neighbor = np.array(index, dtype=int, copy=True)
    neighbor[dim_id] -= 1
    return neighbor


def indices_are_downward_closed(indices):
    """
    Return True if every backward neighbor of every index in ``indices``
    is also a member of ``indices``.

    Parameters
    ----------
    indices : np.ndarray (nvars, nindices)
    """
    keys = set(hash_array(index) for index in indices.T)
    for index in indices.T:
        for dim_id in range(indices.shape[0]):
            if index[dim_id] > 0:
                neighbor = get_backward_neighbor(index, dim_id)
                if hash_array(neighbor) not in keys:
                    return False
    return True


def is_admissible(index, selected_keys):
    """
    An index is admissible if it is not selected and all of its backward
    neighbors are selected.
    """
    if hash_array(index) in selected_keys:
        return False
    for dim_id in range(index.shape[0]):
        if index[dim_id] > 0:
            neighbor = get_backward_neighbor(index, dim_id)
            if hash_array(neighbor) not in selected_keys:
                return False
    return True


class AdmissibilityCriteria(ABC):
    @abstractmethod
    def __call__(self, index):
        raise NotImplementedError

    def __repr__(self):
        return "{0}".format(self.__class__.__name__)


class MaxLevelAdmissibilityCriteria(AdmissibilityCriteria):
    def __init__(self, max_level, pnorm=1):
        self._max_level = max_level
        self._pnorm = pnorm

    def _indices_norm(self, indices):
        return np.sum(indices**self._pnorm, axis=0)**(1.0/self._pnorm)

    def __call__(self, index):
        if self._indices_norm(index) <= self._max_level:
            return True
        return False

    def __repr__(self):
        return "{0}(max_level={1}, pnorm={2})".format(
            self.__class__.__name__, self._max_level, self._pnorm)


class MaxLevelPerDimAdmissibilityCriteria(AdmissibilityCriteria):
    """Bound the level of each variable separately."""

    def __init__(self, max_levels):
        self._max_levels = np.asarray(max_levels, dtype=int)

    def __call__(self, index):
        return bool(np.all(index <= self._max_levels))


def _plot_2d_index(ax, index, color="gray"):
    box = np.array([[index[0]-1, index[1]-1],
                    [index[0], index[1]-1],
                    [index[0], index[1]],
                    [index[0]-1, index[1]],
                    [index[0]-1, index[1]-1]]).T + 0.5
    ax.plot(box[0, :], box[1, :], '-k', lw=1)
    ax.fill(box[0, :], box[1, :], color=color, alpha=0.5, edgecolor='k')


def _plot_index_voxels(ax, data):
    colors = np.zeros((data.shape[0], data.shape[1], data.shape[2], 4))
    colors[np.where(data)] = [1, 1, 1, .9]
    ax.voxels(data, facecolors=colors, edgecolor='gray')


def plot_indices(ax, indices, cand_indices=None):
    """
    Plot two or three dimensional multi-indices as boxes or voxels.
    Candidate indices, if provided, are shaded differently in 2D.
    """
    nvars = indices.shape[0]
    if nvars < 2 or nvars > 3:
        raise RuntimeError("Cannot plot indices when nvars not in [2, 3].")

    if nvars == 2:
        for index in indices.T:
            _plot_2d_index(ax, index)
        if cand_indices is not None:
            for index in cand_indices.T:
                _plot_2d_index(ax, index, color="red")
            indices = np.hstack((indices, cand_indices))
        lim = indices.max()
        ax.set_xticks(np.arange(0, lim + 1))
        ax.set_yticks(np.arange(0, lim + 1))
        ax.set_xlim(-0.5, lim + 1)
        ax.set_ylim(-0.5, lim + 1)
        return

    if not isinstance(ax, Axes3D):
        raise ValueError(
            "ax must be an instance of  mpl_toolkits.mplot3d.Axes3D")
    shape = tuple(indices.max(axis=1)+1)
    filled = np.zeros(shape, dtype=int)
    for nn in range(indices.shape[1]):
        ii, jj, kk = indices[:, nn]
        filled[ii, jj, kk] = 1
    _plot_index_voxels(ax, filled)
    ax.view_init(30, 45)
    ax.set_axis_off()
