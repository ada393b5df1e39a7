import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from ..utils.shared_functions import save_plot


def plot_survival_curves(comparison, title, filename, output_dir):
    """Plot the Kaplan-Meier curve of every group with the log-rank p-value."""
    fig, ax = plt.subplots(figsize=(10, 6))
    for kmf in comparison.fitters.values():
        kmf.plot_survival_function(ax=ax, ci_show=True)

    p_value = comparison.p_value
    if pd.isna(p_value):
        p_text = "p = n/a"
    elif p_value < 0.001:
        p_text = "p < 0.001"
    else:
        p_text = f"p = {p_value:.3f}"
    ax.annotate(p_text, xy=(0.7, 0.05), xycoords='axes fraction', fontsize=12)

    ax.set_title(title, fontsize=14)
    ax.set_xlabel('Time (days)', fontsize=12)
    ax.set_ylabel('Survival Probability', fontsize=12)
    ax.grid(True, alpha=0.3)
    ax.legend(fontsize=10)
    return save_plot(fig, filename, output_dir)


def plot_pca_clusters(projection, explained_variance, filename, output_dir):
    """Scatter tumor samples on PC1/PC2 coloured by cluster."""
    fig, ax = plt.subplots(figsize=(8, 6))
    sns.scatterplot(data=projection, x='PC1', y='PC2', hue='cluster', ax=ax)
    ax.set_xlabel(f'PC1 ({explained_variance[0]:.1%} variance)')
    if len(explained_variance) > 1:
        ax.set_ylabel(f'PC2 ({explained_variance[1]:.1%} variance)')
    ax.set_title('Tumor samples by k-means cluster')
    return save_plot(fig, filename, output_dir)
