import copy
import logging

import numpy as np


logger = logging.getLogger(__name__)


class SurrogateData(object):
    """
    Store of the raw data used to build an interpolant: the input samples,
    the response values and optionally the response gradients.

    Points are stored in the order they are appended. Points at the end of
    the store can be withdrawn under a key with :meth:`pop_points` and
    reinstated with :meth:`push_points`.

    Parameters
    ----------
    nvars : integer
        The number of input variables

    ngrad_vars : integer
        The length of each stored response gradient. Zero means gradients
        are not stored.
    """

    def __init__(self, nvars, ngrad_vars=0):
        self._nvars = nvars
        self._ngrad_vars = ngrad_vars
        self._samples = np.empty((nvars, 0))
        self._values = np.empty((0,))
        self._grads = np.empty((ngrad_vars, 0))
        self._popped = dict()

    def nvars(self):
        return self._nvars

    def ngrad_vars(self):
        return self._ngrad_vars

    def npoints(self):
        return self._samples.shape[1]

    def append(self, samples, values, grads=None):
        """
        Parameters
        ----------
        samples : np.ndarray (nvars, nsamples)

        values : np.ndarray (nsamples)

        grads : np.ndarray (ngrad_vars, nsamples)
        """
        samples = np.asarray(samples, dtype=float)
        values = np.asarray(values, dtype=float).reshape(-1)
        if samples.ndim != 2 or samples.shape[0] != self._nvars:
            raise ValueError("samples must be a 2D array with nrows=nvars")
        if values.shape[0] != samples.shape[1]:
            raise ValueError("must provide one value per sample")
        if self._ngrad_vars > 0:
            if grads is None:
                raise ValueError("grads must be provided")
            grads = np.asarray(grads, dtype=float)
            if grads.shape != (self._ngrad_vars, samples.shape[1]):
                raise ValueError(
                    "grads has the wrong shape {0}".format(grads.shape))
        else:
            grads = np.empty((0, samples.shape[1]))
        self._samples = np.hstack((self._samples, samples))
        self._values = np.hstack((self._values, values))
        self._grads = np.hstack((self._grads, grads))

    def variables(self, idx):
        return self._samples[:, idx]

    def response_value(self, idx):
        return self._values[idx]

    def response_gradient(self, idx):
        if self._ngrad_vars == 0:
            raise RuntimeError("Response gradients were not stored")
        return self._grads[:, idx]

    def get_samples(self):
        return self._samples

    def response_values(self):
        return self._values

    def response_gradients(self):
        return self._grads

    def pop_points(self, npts, key=None):
        """
        Withdraw the last ``npts`` points and save them under ``key``. The
        points are discarded when ``key`` is None.
        """
        if npts > self.npoints():
            raise RuntimeError(
                "Cannot pop {0} points from a store with {1} points".format(
                    npts, self.npoints()))
        if key in self._popped:
            raise RuntimeError("Points already popped for {0}".format(key))
        first = self.npoints()-npts
        if key is not None:
            self._popped[key] = (
                self._samples[:, first:], self._values[first:],
                self._grads[:, first:])
        self._samples = self._samples[:, :first]
        self._values = self._values[:first]
        self._grads = self._grads[:, :first]
        logger.debug("popped %d points under %s", npts, key)

    def push_points(self, key):
        """Append the points saved under ``key`` and forget them."""
        if key not in self._popped:
            raise RuntimeError("No points were popped for {0}".format(key))
        samples, values, grads = self._popped.pop(key)
        self._samples = np.hstack((self._samples, samples))
        self._values = np.hstack((self._values, values))
        self._grads = np.hstack((self._grads, grads))
        logger.debug("pushed %d points from %s", values.shape[0], key)

    def popped_keys(self):
        return list(self._popped.keys())

    def clear_popped(self):
        self._popped = dict()

    def copy(self):
        return copy.deepcopy(self)

    def __repr__(self):
        return "{0}(nvars={1}, npoints={2}, npopped={3})".format(
            self.__class__.__name__, self._nvars, self.npoints(),
            len(self._popped))
