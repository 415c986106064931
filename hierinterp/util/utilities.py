import itertools

import numpy as np
from scipy.special import comb


def hash_array(array, decimals=None):
    r"""
    Hash an array for dictionary or set based lookup

    Parameters
    ----------
    array : np.ndarray
       The array to hash

    decimals : integer
       Round the array to this many decimals before hashing. Only
       needed for floating point arrays.

    Returns
    -------
    key : integer
       The hash value of the array
    """
    array = np.ascontiguousarray(array)
    if decimals is not None:
        array = np.around(array, decimals)
    return hash(array.tobytes())


def cartesian_product(input_sets):
    r"""
    Compute the cartesian product of an arbitray number of sets.

    The first set varies fastest, i.e. the ordering matches a tensor product
    grid whose first dimension is the innermost loop.

    Parameters
    ----------
    input_sets : list
        The sets to be used in the cartesian product.

    Returns
    -------
    result : np.ndarray (num_sets, num_elems)
        The cartesian product. num_elems = np.prod(sizes),
        where sizes[ii] = len(input_sets[ii]), ii=0,..,num_sets-1.
    """
    out = [r for r in itertools.product(*input_sets[::-1])]
    if len(out) == 0:
        return np.empty((len(input_sets), 0))
    return np.asarray(out).T[::-1, :]


def outer_product(input_sets, axis=0):
    r"""
    Construct the outer product of an arbitary number of sets.

    Examples
    --------

    .. math::

        \{1,2\}\times\{3,4\}=\{1\times3, 2\times3, 1\times4, 2\times4\} =
        \{3, 6, 4, 8\}

    Parameters
    ----------
    input_sets
        The sets to be used in the outer product

    Returns
    -------
    result : np.ndarray(np.prod(sizes))
       The outer product of the sets.
    """
    return np.prod(cartesian_product(input_sets), axis=axis)


def nchoosek(nn, kk):
    result = np.asarray(np.round(comb(nn, kk)), dtype=int)
    if result.ndim == 0:
        result = result.item()
    return result


def lists_of_arrays_equal(list1, list2, exact=False):
    if len(list1) != len(list2):
        return False
    for ll in range(len(list1)):
        if np.shape(list1[ll]) != np.shape(list2[ll]):
            return False
        if exact and not np.array_equal(list1[ll], list2[ll]):
            return False
        if not exact and not np.allclose(list1[ll], list2[ll]):
            return False
    return True


def lists_of_lists_of_arrays_equal(list1, list2, exact=False):
    if len(list1) != len(list2):
        return False
    for ll in range(len(list1)):
        if not lists_of_arrays_equal(list1[ll], list2[ll], exact):
            return False
    return True
