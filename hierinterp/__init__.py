"""
hierinterp : Adaptive hierarchical interpolation on nested sparse grids
"""

name = "hierinterp"
