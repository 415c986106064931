"""The :mod:`hierinterp.surrogates` module implements hierarchical
interpolants on nested sparse grids.
"""

from hierinterp.surrogates.sparsegrids.driver import HierarchSparseGridDriver
from hierinterp.surrogates.sparsegrids.hierarchical import (
    HierarchInterpPolyApproximation
)
from hierinterp.surrogates.sparsegrids.adaptive import (
    AdaptiveHierarchicalSparseGrid
)


__all__ = ["HierarchSparseGridDriver", "HierarchInterpPolyApproximation",
           "AdaptiveHierarchicalSparseGrid"]
