import numpy as np
from scipy.optimize import OptimizeResult


class SensitivityResult(OptimizeResult):
    pass


def hierarchical_sobol_sensitivities(approxs, max_order=None):
    r"""
    Compute variance based sensitivity indices from the hierarchical
    interpolants of one or more responses built on the same sparse grid.

    Parameters
    ----------
    approxs : list
        One :class:`HierarchInterpPolyApproximation` per quantity of
        interest. A single approximation is also accepted.

    max_order : integer
        The maximum number of interacting variables of the returned Sobol
        indices. None returns every interaction represented by the grid.

    Returns
    -------
    result : :class:`SensitivityResult`
         Result object with the following attributes

    main_effects : np.ndarray (nvars, nqoi)
        The variance based main effect sensitivity indices

    total_effects : np.ndarray (nvars, nqoi)
        The variance based total effect sensitivity indices

    sobol_indices : np.ndarray (ninteractions, nqoi)
        The variance based Sobol sensitivity indices

    sobol_interaction_indices : list (ninteractions)
        np.ndarrays of varying size specifying the variables in each
        interaction in ``sobol_indices``
    """
    if not isinstance(approxs, (list, tuple)):
        approxs = [approxs]
    nvars = approxs[0].nvars()
    for approx in approxs[1:]:
        if approx.driver() is not approxs[0].driver():
            raise ValueError("approxs must share the same driver")

    sobol_indices, total_effects = [], []
    for approx in approxs:
        sobol_indices.append(approx.compute_component_sobol().copy())
        total_effects.append(approx.compute_total_sobol().copy())
    index_map = approxs[0].sobol_index_map()

    interaction_terms = sorted(
        index_map.keys(), key=lambda inter: index_map[inter])
    if max_order is not None:
        interaction_terms = [
            inter for inter in interaction_terms if len(inter) <= max_order]
    II = [index_map[inter] for inter in interaction_terms]
    sobol_indices = np.asarray(sobol_indices).T[II]

    main_effects = np.zeros((nvars, len(approxs)))
    for inter, idx in zip(interaction_terms, range(len(II))):
        if len(inter) == 1:
            main_effects[inter[0]] = sobol_indices[idx]

    return SensitivityResult(
        {'main_effects': main_effects,
         'total_effects': np.asarray(total_effects).T,
         'sobol_indices': sobol_indices,
         'sobol_interaction_indices': [
             np.asarray(inter, dtype=int) for inter in interaction_terms]})


def plot_main_effects(main_effects, ax, truncation_pct=0.95,
                      max_slices=5, rv='z', qoi=0):
    r"""
    Plot the main effects in a pie chart showing relative size.

    Parameters
    ----------
    main_effects : np.ndarray (nvars,nqoi)
        The variance based main effect sensitivity indices

    ax : :class:`matplotlib.pyplot.axes.Axes`
        Axes that will be used for plotting

    truncation_pct : float
        The proportion :math:`0<p\le 1` of the sensitivity indices
        effects to plot

    max_slices : integer
        The maximum number of slices in the pie-chart. Will only
        be active if the turncation_pct gives more than max_slices

    rv : string
        The name of the random variables when creating labels

    qoi : integer
        The index 0<qoi<nqoi of the quantitiy of interest to plot
    """
    main_effects = np.array(main_effects[:, qoi], copy=True)
    main_effects_sum = main_effects.sum()
    if main_effects_sum > 1.+np.sqrt(np.finfo(float).eps):
        raise ValueError("main effects must sum to at most one")

    # sort main_effects in descending order
    II = np.argsort(main_effects)[::-1]
    main_effects = main_effects[II]

    labels = []
    partial_sum = 0.
    for ii in range(II.shape[0]):
        if partial_sum/main_effects_sum < truncation_pct and ii < max_slices:
            labels.append('$%s_{%d}$' % (rv, II[ii]+1))
            partial_sum += main_effects[ii]
        else:
            break
    main_effects = main_effects[:len(labels)]

    explode = np.zeros(main_effects.shape[0])
    if main_effects_sum-partial_sum > np.sqrt(np.finfo(float).eps):
        labels.append(r'$\mathrm{other}$')
        main_effects = np.concatenate(
            [main_effects, [main_effects_sum-partial_sum]])
        explode = np.zeros(main_effects.shape[0])
        explode[-1] = 0.1

    p = ax.pie(main_effects, labels=labels, autopct='%1.1f%%',
               shadow=True, explode=explode)
    return p


def plot_total_effects(total_effects, ax, rv='z', qoi=0):
    r"""
    Plot the total effects in a bar chart showing relative size.

    Parameters
    ----------
    total_effects : np.ndarray (nvars,nqoi)
        The variance based total effect sensitivity indices

    ax : :class:`matplotlib.pyplot.axes.Axes`
        Axes that will be used for plotting

    rv : string
        The name of the random variables when creating labels

    qoi : integer
        The index 0<qoi<nqoi of the quantitiy of interest to plot
    """
    total_effects = total_effects[:, qoi]

    width = .95
    locations = np.arange(total_effects.shape[0])
    p = ax.bar(locations-width/2, total_effects, width, align='edge')
    labels = ['$%s_{%d}$' % (rv, ii+1) for ii in range(total_effects.shape[0])]
    ax.set_xticks(locations)
    ax.set_xticklabels(labels, rotation=0)
    return p


def _interaction_label(interaction_term, rv):
    label = '($'
    for jj in range(len(interaction_term)-1):
        label += '%s_{%d},' % (rv, interaction_term[jj]+1)
    label += '%s_{%d}$)' % (rv, interaction_term[-1]+1)
    return label


def plot_interaction_values(interaction_values, interaction_terms, ax,
                            truncation_pct=0.95, max_slices=5, rv='z', qoi=0):
    r"""
    Plot sobol indices in a pie chart showing relative size.

    Parameters
    ----------
    interaction_values : np.ndarray (ninteractions,nqoi)
        The variance based Sobol indices

    interaction_terms : list (ninteractions)
        Indices np.ndarrays of varying size specifying the variables in each
        interaction in ``interaction_values``

    ax : :class:`matplotlib.pyplot.axes.Axes`
        Axes that will be used for plotting

    truncation_pct : float
        The proportion :math:`0<p\le 1` of the sensitivity indices
        effects to plot

    max_slices : integer
        The maximum number of slices in the pie-chart

    rv : string
        The name of the random variables when creating labels

    qoi : integer
        The index 0<qoi<nqoi of the quantitiy of interest to plot
    """
    if interaction_values.shape[0] != len(interaction_terms):
        raise ValueError(
            "must provide one interaction term per interaction value")
    interaction_values = interaction_values[:, qoi]

    II = np.argsort(interaction_values)[::-1]
    interaction_values = interaction_values[II]
    interaction_terms = [interaction_terms[ii] for ii in II]

    labels = []
    partial_sum = 0.
    for ii in range(interaction_values.shape[0]):
        if partial_sum < truncation_pct and ii < max_slices:
            labels.append(_interaction_label(interaction_terms[ii], rv))
            partial_sum += interaction_values[ii]
        else:
            break

    interaction_values = interaction_values[:len(labels)]
    if abs(partial_sum - 1.) > 10 * np.finfo(np.double).eps:
        labels.append(r'$\mathrm{other}$')
        interaction_values = np.concatenate(
            [interaction_values, [max(1.-partial_sum, 0.)]])

    explode = np.zeros(interaction_values.shape[0])
    explode[-1] = 0.1
    p = ax.pie(interaction_values, labels=labels, autopct='%1.1f%%',
               shadow=True, explode=explode)
    return p


def _plot_sensitivity_indices(labels, ax, sa_indices):
    locations = np.arange(sa_indices.shape[0])
    bp = ax.bar(locations, sa_indices[:, 0])
    ax.set_xticks(locations)
    ax.set_xticklabels(labels, rotation=45)
    return bp


def plot_sensitivity_indices(result, axs=None, rv='z'):
    """
    Plot the main effects, total effects and the ten largest Sobol
    indices of the first quantity of interest as bar charts.
    """
    import matplotlib.pyplot as plt
    if axs is None:
        fig, axs = plt.subplots(1, 3, figsize=(3*8, 6), sharey=True)

    nvars = result['main_effects'].shape[0]
    labels = [r'$%s_{%d}$' % (rv, ii+1) for ii in range(nvars)]
    im0 = _plot_sensitivity_indices(labels, axs[0], result['main_effects'])
    im1 = _plot_sensitivity_indices(labels, axs[1], result['total_effects'])
    II = np.argsort(result['sobol_indices'][:, 0])[-10:][::-1]
    labels = [_interaction_label(result['sobol_interaction_indices'][ii], rv)
              for ii in II]
    im2 = _plot_sensitivity_indices(
        labels, axs[2], result['sobol_indices'][II])
    return [im0, im1, im2], axs
