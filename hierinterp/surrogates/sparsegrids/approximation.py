from abc import ABC, abstractmethod
import warnings

import numpy as np

from hierinterp.surrogates.sparsegrids.options import (
    ExpansionConfigOptions, BasisConfigOptions, validate_options,
    SMALL_NUMBER)


def sqrt1pm1(x):
    r"""
    Compute :math:`\sqrt{1+x}-1` without loss of precision for small x.
    """
    return np.expm1(np.log1p(x)/2.)


def delta_beta_map(mu0, delta_mu, var0, delta_sigma, cdf_flag, z_bar):
    r"""
    Change in the reliability index caused by a change in the mean and
    standard deviation.

    For a CDF level :math:`\beta = (\mu-\bar{z})/\sigma` and

    .. math:: \Delta\beta = (\Delta\mu - \Delta\sigma\beta_0)/\sigma_1

    For a CCDF level :math:`\beta = (\bar{z}-\mu)/\sigma` and

    .. math:: \Delta\beta = (-\Delta\mu - \Delta\sigma\beta_0)/\sigma_1

    A single point reference grid has zero variance and an index set that
    does not change the response can leave the variance zero, so the
    degenerate cases are treated explicitly.

    Parameters
    ----------
    mu0 : float
        The reference mean

    delta_mu : float
        The change in the mean

    var0 : float
        The reference variance

    delta_sigma : float
        The change in the standard deviation

    cdf_flag : boolean
        True for a CDF level, False for a CCDF level

    z_bar : float
        The response level
    """
    sigma0 = np.sqrt(var0)
    sigma1 = sigma0 + delta_sigma
    if cdf_flag:
        if sigma0 > SMALL_NUMBER and sigma1 > SMALL_NUMBER:
            beta0 = (mu0 - z_bar) / sigma0
            return (delta_mu - delta_sigma * beta0) / sigma1
        if sigma1 > SMALL_NUMBER:
            # reference reliability is taken to be zero
            return delta_mu / sigma1
        if sigma0 > SMALL_NUMBER:
            # new reliability is taken to be zero
            return (z_bar - mu0) / sigma0
        return 0.
    if sigma0 > SMALL_NUMBER and sigma1 > SMALL_NUMBER:
        beta0 = (z_bar - mu0) / sigma0
        return (-delta_mu - delta_sigma * beta0) / sigma1
    if sigma1 > SMALL_NUMBER:
        return -delta_mu / sigma1
    if sigma0 > SMALL_NUMBER:
        return (mu0 - z_bar) / sigma0
    return 0.


def delta_std_deviation_map(var0, delta_var):
    r"""
    Change in the standard deviation caused by a change in the variance

    .. math::

        \Delta\sigma = \sqrt{\sigma_0^2+\Delta\sigma^2}-\sigma_0
        = \left(\sqrt{1+\Delta\sigma^2/\sigma_0^2}-1\right)\sigma_0
    """
    sigma0 = np.sqrt(var0)
    if var0 > 0 and delta_var < var0:
        return sqrt1pm1(delta_var/var0)*sigma0
    return np.sqrt(max(var0 + delta_var, 0.)) - sigma0


def delta_z_map(delta_mu, delta_sigma, cdf_flag, beta_bar):
    """Change in the response level mapped from a reliability level."""
    if cdf_flag:
        return delta_mu - delta_sigma*beta_bar
    return delta_mu + delta_sigma*beta_bar


def standardize_moments(central_moments):
    """
    Convert central moments to standardized moments.

    Parameters
    ----------
    central_moments : np.ndarray (nmoments)
        The mean, variance and optionally the third and fourth central
        moments

    Returns
    -------
    std_moments : np.ndarray (nmoments)
        The mean, standard deviation, skewness and excess kurtosis
    """
    central_moments = np.asarray(central_moments, dtype=float)
    nmoments = central_moments.shape[0]
    std_moments = np.zeros(nmoments)
    std_moments[0] = central_moments[0]
    if nmoments == 1:
        return std_moments
    if central_moments[1] <= 0:
        msg = "Variance {0} is not positive. ".format(central_moments[1])
        msg += "Setting higher standardized moments to zero"
        warnings.warn(msg, UserWarning)
        return std_moments
    std_dev = np.sqrt(central_moments[1])
    std_moments[1] = std_dev
    if nmoments > 2:
        std_moments[2] = central_moments[2]/std_dev**3
    if nmoments > 3:
        std_moments[3] = central_moments[3]/central_moments[1]**2-3.
    return std_moments


def sobol_index_map(smolyak_mi, vbd_order_limit=None):
    """
    Enumerate the interactions represented by a set of multi-indices.

    Each index set with a positive level contributes the tuple of its
    active variables. Interactions are ordered by the number of variables
    and then lexiographically so every interaction follows all of its
    subsets.

    Returns
    -------
    index_map : dict
        Map from a tuple of variable ids to the position of its Sobol'
        index
    """
    interactions = set()
    for lev in range(1, len(smolyak_mi)):
        for index in smolyak_mi[lev]:
            active = tuple(int(dd) for dd in np.where(index > 0)[0])
            if vbd_order_limit is not None and len(active) > vbd_order_limit:
                continue
            interactions.add(active)
    ordered = sorted(interactions, key=lambda inter: (len(inter), inter))
    return dict((inter, ii) for ii, inter in enumerate(ordered))


class PolynomialApproximation(ABC):
    """
    Capability contract shared by all expansions of a response quantity.

    An expansion is built on a sparse grid driver that is shared by the
    expansions of every response quantity and is never modified by them.

    Parameters
    ----------
    driver : object
        The sparse grid driver defining the index sets and points

    expcfg_options : :class:`ExpansionConfigOptions`
        Options controlling which quantities are computed

    basis_options : :class:`BasisConfigOptions`
        Options controlling the interpolation basis
    """

    def __init__(self, driver, expcfg_options=None, basis_options=None):
        if expcfg_options is None:
            expcfg_options = ExpansionConfigOptions()
        if basis_options is None:
            basis_options = BasisConfigOptions(
                use_derivs=driver.use_derivs())
        validate_options(expcfg_options, basis_options)
        if basis_options.use_derivs and not driver.use_derivs():
            raise ValueError(
                "driver must compute type-2 weights when use_derivs is True")
        if np.any(expcfg_options.nonrandom_indices >= driver.nvars()):
            raise ValueError("nonrandom_indices exceed the number of vars")
        self._driver = driver
        self._expcfg = expcfg_options
        self._basis_opts = basis_options
        self._sobol_index_map = dict()
        self._sobol_indices = np.zeros(0)
        self._total_sobol_indices = np.zeros(driver.nvars())

    def nvars(self):
        return self._driver.nvars()

    def driver(self):
        return self._driver

    def expansion_config_options(self):
        return self._expcfg

    def basis_config_options(self):
        return self._basis_opts

    def _all_variables_mode(self):
        return self._expcfg.all_variables_mode()

    def _random_indices(self):
        return np.setdiff1d(
            np.arange(self.nvars()), self._expcfg.nonrandom_indices)

    def allocate_component_sobol(self):
        """Size the Sobol' indices from the current index sets."""
        self._sobol_index_map = sobol_index_map(
            self._driver.smolyak_multi_index(), self._expcfg.vbd_order_limit)
        if self._sobol_indices.shape[0] != len(self._sobol_index_map):
            self._sobol_indices = np.zeros(len(self._sobol_index_map))

    def sobol_index_map(self):
        return self._sobol_index_map

    def sobol_indices(self):
        return self._sobol_indices

    def total_sobol_indices(self):
        return self._total_sobol_indices

    def __call__(self, samples):
        return self.value(samples)[:, None]

    def __repr__(self):
        return "{0}(nvars={1})".format(self.__class__.__name__, self.nvars())

    @abstractmethod
    def allocate_arrays(self):
        raise NotImplementedError

    @abstractmethod
    def compute_coefficients(self):
        raise NotImplementedError

    @abstractmethod
    def increment_coefficients(self, index_set=None):
        raise NotImplementedError

    @abstractmethod
    def decrement_coefficients(self, save_data=True):
        raise NotImplementedError

    @abstractmethod
    def push_coefficients(self, index_set):
        raise NotImplementedError

    @abstractmethod
    def finalize_coefficients(self):
        raise NotImplementedError

    @abstractmethod
    def combine_coefficients(self, other_key, combine_type=None):
        raise NotImplementedError

    @abstractmethod
    def value(self, samples):
        raise NotImplementedError

    @abstractmethod
    def gradient_basis_variables(self, samples, dvv=None):
        raise NotImplementedError

    @abstractmethod
    def mean(self, x=None):
        raise NotImplementedError

    @abstractmethod
    def variance(self, x=None):
        raise NotImplementedError

    @abstractmethod
    def covariance(self, other=None, x=None):
        raise NotImplementedError

    @abstractmethod
    def compute_component_sobol(self):
        raise NotImplementedError

    @abstractmethod
    def compute_total_sobol(self):
        raise NotImplementedError

    def standardize_moments(self, central_moments):
        return standardize_moments(central_moments)


def approximation_factory(approx_type, driver, expcfg_options=None,
                          basis_options=None):
    """
    Construct an expansion of the requested type.

    Parameters
    ----------
    approx_type : string
        The type of expansion. Only "hierarchical_interpolation" is
        supported.
    """
    # avoid circular import
    from hierinterp.surrogates.sparsegrids.hierarchical import (
        HierarchInterpPolyApproximation)
    approx_types = {
        "hierarchical_interpolation": HierarchInterpPolyApproximation,
    }
    if approx_type not in approx_types:
        raise ValueError(
            "approx_type {0} not supported. Use one of {1}".format(
                approx_type, list(approx_types.keys())))
    return approx_types[approx_type](driver, expcfg_options, basis_options)


__all__ = ["PolynomialApproximation", "approximation_factory", "sqrt1pm1",
           "delta_beta_map", "delta_std_deviation_map", "delta_z_map",
           "standardize_moments", "sobol_index_map"]
