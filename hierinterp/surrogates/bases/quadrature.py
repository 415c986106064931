import numpy as np
from scipy.special import roots_legendre


def clenshaw_curtis_rule_growth(level):
    """
    The number of samples in the 1D Clenshaw-Curtis quadrature rule of a given
    level.

    Parameters
    ----------
    level : integer
       The level of the quadrature rule

    Return
    ------
    num_samples_1d : integer
        The number of samples in the quadrature rule
    """
    if level == 0:
        return 1
    return 2**level+1


def clenshaw_curtis_hierarchical_to_nodal_index(level, ll, ii):
    """
    Convert a 1D hierarchical index (ll,ii) to a nodal index for lookup in a
    Clenshaw-Curtis quadrature rule of level ``level``.

    Parameters
    ----------
    level : integer
        The maximum level of the quadrature rule

    ll : integer
        The level of the hierarchical index

    ii : integer
        The index of the point amongst the points first introduced at
        level ll

    Return
    ------
    nodal_index : integer
        The equivalent nodal index of (ll,ii)
    """
    num_indices = clenshaw_curtis_rule_growth(level)
    if ll == 0:
        return num_indices//2
    if ll == 1:
        if ii == 0:
            return 0
        return num_indices-1
    return (2*ii+1)*2**(level-ll)


def clenshaw_curtis_poly_indices_to_quad_rule_indices(level):
    """
    Convert all 1D hierarchical indices up to and including a given level
    to their equivalent nodal index in a Clenshaw-Curtis quadrature rule.

    Parameters
    ----------
    level : integer
        The maximum level of the quadrature rule

    Return
    ------
    quad_rule_indices : np.ndarray (num_indices)
        All the quadrature rule indices
    """
    quad_rule_indices = []
    nprev_indices = 0
    for ll in range(level+1):
        nnew_indices = clenshaw_curtis_rule_growth(ll)-nprev_indices
        quad_rule_indices += [
            clenshaw_curtis_hierarchical_to_nodal_index(level, ll, ii)
            for ii in range(nnew_indices)]
        nprev_indices += nnew_indices
    return np.asarray(quad_rule_indices, dtype=int)


def clenshaw_curtis_pts_wts_1D(level):
    """
    Generate a nested, exponentially-growing Clenshaw-Curtis quadrature rule
    that exactly integrates polynomials of degree 2**level+1 with respect to
    the uniform probability measure on [-1,1].

    Parameters
    ----------
    level : integer
        The level of the nested quadrature rule. The number of samples in the
        quadrature rule will be 2**level+1

    Returns
    -------
    x : np.ndarray(num_samples)
        Quadrature samples in ascending order

    w : np.ndarray(num_samples)
        Quadrature weights
    """
    if level == 0:
        return np.zeros(1), np.ones(1)

    nsamples = clenshaw_curtis_rule_growth(level)
    nintervals = nsamples-1
    jj = np.arange(nsamples)
    x = -np.cos(np.pi*jj/nintervals)
    x[np.absolute(x) < 2*np.finfo(float).eps] = 0.

    kk = np.arange(1, (nsamples-3)//2+1)
    mysum = (np.cos(2*np.pi*np.outer(jj, kk)/nintervals) /
             (4.*kk**2-1.)[None, :]).sum(axis=1)
    w = 2./nintervals*(
        1.-np.cos(np.pi*jj)/(nsamples*(nsamples-2.))-2.*mysum)
    w[0] = w[-1] = 1./(nsamples*(nsamples-2.))
    # weights of the probability measure 1/2 on [-1, 1]
    w *= 0.5
    return x, w


def clenshaw_curtis_in_polynomial_order(level,
                                        return_weights_for_all_levels=True):
    """
    Return the samples and weights of the Clenshaw-Curtis rule using
    polynomial ordering.

    The first point will be the middle point of the rule. The second and
    third points will be the left and right boundaries. The points first
    introduced at each higher level follow, left to right. Consequently the
    samples of level l are always the first samples of level l+1.

    Parameters
    ----------
    level : integer
        The level of the rule

    return_weights_for_all_levels : boolean
        True  - return weights [w(0),w(1),...,w(level)]
        False - return w(level)

    Return
    ------
    ordered_samples_1d : np.ndarray (num_samples_1d)
        The reordered samples.

    ordered_weights_1d : np.ndarray (num_samples_1d) or list
        The reordered weights.
    """
    if not return_weights_for_all_levels:
        x, w = clenshaw_curtis_pts_wts_1D(level)
        quad_indices = clenshaw_curtis_poly_indices_to_quad_rule_indices(level)
        return x[quad_indices], w[quad_indices]

    ordered_weights_1d = []
    for ll in range(level+1):
        x, w = clenshaw_curtis_pts_wts_1D(ll)
        quad_indices = clenshaw_curtis_poly_indices_to_quad_rule_indices(ll)
        ordered_weights_1d.append(w[quad_indices])
    return x[quad_indices], ordered_weights_1d


def gauss_legendre_pts_wts_1D(nsamples):
    """
    Gauss-Legendre rule for the uniform probability measure on [-1, 1].
    """
    x, w = roots_legendre(nsamples)
    return x, w*0.5
