import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.cluster import KMeans
from sklearn.decomposition import PCA

from ..config import CONFIG
from .survival import compare_survival

logger = logging.getLogger(__name__)


@dataclass
class ClusterResult:
    labels: pd.Series
    genes: list
    pca: pd.DataFrame
    explained_variance: np.ndarray


def select_top_variance_genes(matrix, n_genes=CONFIG['top_variance_genes']):
    """
    Keep the n_genes rows of a genes x tumor-samples matrix with the largest
    variance. Genes with any non-finite value are left out of the ranking.
    """
    finite = np.isfinite(matrix.to_numpy(dtype=float)).all(axis=1)
    if not finite.all():
        logger.info(f"Skipping {int((~finite).sum())} genes with undefined values")
    candidates = matrix.iloc[np.flatnonzero(finite)]
    variances = candidates.var(axis=1, ddof=1).to_numpy()
    top = np.argsort(-variances, kind="stable")[:n_genes]
    logger.info(f"Selected {len(top)} top-variance genes out of {len(candidates)}")
    return candidates.iloc[top]


def _relabel_by_size(raw_labels):
    """Name clusters 'cluster_1', 'cluster_2', ... by decreasing size, ties by first appearance."""
    raw = pd.Series(raw_labels)
    sizes = raw.value_counts()
    first_seen = {label: i for i, label in reversed(list(enumerate(raw)))}
    order = sorted(sizes.index, key=lambda label: (-sizes[label], first_seen[label]))
    names = {label: f"cluster_{rank + 1}" for rank, label in enumerate(order)}
    return raw.map(names).to_numpy()


def cluster_samples(matrix, n_clusters=CONFIG['n_clusters'], random_state=CONFIG['random_seed']):
    """
    Run k-means on samples using genes as features.

    Args:
        matrix (pd.DataFrame): Genes x samples, all values finite.
        n_clusters (int): Number of clusters.
        random_state (int): Seed passed to KMeans; identical input and seed give identical labels.

    Returns:
        pd.Series: Cluster label per sample.
    """
    if matrix.shape[1] < n_clusters:
        raise ValueError(f"Cannot form {n_clusters} clusters from {matrix.shape[1]} samples")
    kmeans = KMeans(n_clusters=n_clusters, random_state=random_state, n_init=CONFIG['kmeans_n_init'])
    raw_labels = kmeans.fit_predict(matrix.T.to_numpy())
    labels = pd.Series(_relabel_by_size(raw_labels), index=matrix.columns, name='cluster')
    logger.info(f"K-means cluster sizes: {labels.value_counts().to_dict()}")
    return labels


def project_pca(matrix, labels, n_components=2):
    """Project samples onto their first principal components for visualization."""
    n_components = min(n_components, *matrix.shape)
    pca = PCA(n_components=n_components)
    coordinates = pca.fit_transform(matrix.T.to_numpy())
    projection = pd.DataFrame(
        coordinates,
        index=matrix.columns,
        columns=[f'PC{i + 1}' for i in range(n_components)],
    )
    projection['cluster'] = labels.reindex(projection.index)
    return projection, pca.explained_variance_ratio_


def cluster_survival(cohort, n_genes=CONFIG['top_variance_genes'], n_clusters=CONFIG['n_clusters'],
                     random_state=CONFIG['random_seed']):
    """Cluster the tumor samples of a cohort on their top-variance genes and compare survival per cluster."""
    selected = select_top_variance_genes(cohort.expression, n_genes=n_genes)
    labels = cluster_samples(selected, n_clusters=n_clusters, random_state=random_state)
    projection, explained = project_pca(selected, labels)
    clusters = ClusterResult(
        labels=labels,
        genes=selected.index.tolist(),
        pca=projection,
        explained_variance=explained,
    )
    comparison = compare_survival(cohort.clinical, labels)
    return clusters, comparison
