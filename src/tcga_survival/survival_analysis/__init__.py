"""
Survival Analysis package initialization
"""

from .survival import SurvivalComparison, dysregulation_groups, compare_survival, gene_survival
from .clustering import (
    ClusterResult,
    select_top_variance_genes,
    cluster_samples,
    project_pca,
    cluster_survival,
)
