import numpy as np


# threshold below which a standard deviation or variance is treated as zero
SMALL_NUMBER = 1.e-25

UNIFORM_CONTROL = "uniform"
DIMENSION_ADAPTIVE_CONTROL_GENERALIZED = "dimension_adaptive"
REFINEMENT_CONTROLS = (None, UNIFORM_CONTROL,
                       DIMENSION_ADAPTIVE_CONTROL_GENERALIZED)

ADD_COMBINE = "add"
MULT_COMBINE = "mult"
COMBINE_TYPES = (ADD_COMBINE, MULT_COMBINE)


class ExpansionConfigOptions(object):
    """
    Options controlling which quantities an expansion computes.

    Parameters
    ----------
    expansion_coeff_flag : boolean
        Compute the hierarchical surpluses of the response values

    expansion_coeff_grad_flag : boolean
        Compute the hierarchical surpluses of the response gradients with
        respect to variables that are not part of the expansion

    refinement_control : string
        One of None, "uniform" or "dimension_adaptive". When not None the
        reference and delta statistics used by a refinement loop are
        tracked.

    nonrandom_indices : iterable
        The indices of the variables that are not integrated when computing
        statistics (all-variables mode).

    vbd_order_limit : integer
        The maximum number of interacting variables for which Sobol' indices
        are computed. None means no limit.

    combine_type : string
        How another expansion is combined with this one. "add" or "mult"
    """

    def __init__(self, expansion_coeff_flag=True,
                 expansion_coeff_grad_flag=False,
                 refinement_control=None, nonrandom_indices=(),
                 vbd_order_limit=None, combine_type=ADD_COMBINE):
        self.expansion_coeff_flag = expansion_coeff_flag
        self.expansion_coeff_grad_flag = expansion_coeff_grad_flag
        self.refinement_control = refinement_control
        self.nonrandom_indices = np.asarray(nonrandom_indices, dtype=int)
        self.vbd_order_limit = vbd_order_limit
        self.combine_type = combine_type
        self.validate()

    def validate(self):
        if self.refinement_control not in REFINEMENT_CONTROLS:
            raise ValueError(
                "refinement_control {0} not supported. Use one of {1}".format(
                    self.refinement_control, REFINEMENT_CONTROLS))
        if self.combine_type not in COMBINE_TYPES:
            raise ValueError(
                "combine_type {0} not supported. Use one of {1}".format(
                    self.combine_type, COMBINE_TYPES))
        if self.nonrandom_indices.ndim != 1:
            raise ValueError("nonrandom_indices must be a 1D array")
        if np.unique(self.nonrandom_indices).shape[0] != \
           self.nonrandom_indices.shape[0]:
            raise ValueError("nonrandom_indices must be unique")
        if self.vbd_order_limit is not None and self.vbd_order_limit < 1:
            raise ValueError("vbd_order_limit must be a positive integer")

    def all_variables_mode(self):
        return self.nonrandom_indices.shape[0] > 0

    def __repr__(self):
        return ("{0}(expansion_coeff_flag={1}, expansion_coeff_grad_flag={2}, "
                "refinement_control={3})").format(
                    self.__class__.__name__, self.expansion_coeff_flag,
                    self.expansion_coeff_grad_flag, self.refinement_control)


class BasisConfigOptions(object):
    """
    Options controlling the interpolation basis.

    Parameters
    ----------
    use_derivs : boolean
        Build a derivative enhanced (Hermite) interpolant that matches
        response gradients as well as values.
    """

    def __init__(self, use_derivs=False):
        self.use_derivs = use_derivs
        self.validate()

    def validate(self):
        if not isinstance(self.use_derivs, (bool, np.bool_)):
            raise ValueError("use_derivs must be a boolean")

    def __repr__(self):
        return "{0}(use_derivs={1})".format(
            self.__class__.__name__, self.use_derivs)


def validate_options(expcfg_options, basis_options):
    """Check that expansion and basis options are mutually consistent."""
    expcfg_options.validate()
    basis_options.validate()
    if basis_options.use_derivs and expcfg_options.expansion_coeff_grad_flag:
        raise ValueError(
            "Gradient-enhanced interpolants cannot also compute coefficient "
            "gradients with respect to non-expansion variables")
