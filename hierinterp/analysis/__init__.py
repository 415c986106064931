from hierinterp.analysis.sensitivity_analysis import (
    hierarchical_sobol_sensitivities, plot_main_effects, plot_total_effects,
    plot_interaction_values, plot_sensitivity_indices
)


__all__ = ["hierarchical_sobol_sensitivities", "plot_main_effects",
           "plot_total_effects", "plot_interaction_values",
           "plot_sensitivity_indices"]
