"""
TCGA Survival Pipeline
Runs expression normalization, clinical matching and survival analyses once
"""

import argparse
import logging
import os
from dataclasses import dataclass

import matplotlib
import pandas as pd

from .config import CONFIG
from .data_processing.clinical import load_clinical_table, process_clinical
from .data_processing.expression import (
    COLLISION_POLICIES,
    DESCRIPTOR_ROW_POLICIES,
    VoomResult,
    filter_low_expression,
    load_expression_matrix,
    rename_to_patient_ids,
    variance_stabilize,
)
from .data_processing.matching import MatchedCohort, match_cohort
from .data_processing.zscore import compute_zscores, gene_symbol, split_samples
from .survival_analysis.clustering import ClusterResult, cluster_survival
from .survival_analysis.plotting import plot_pca_clusters, plot_survival_curves
from .survival_analysis.survival import SurvivalComparison, gene_survival
from .utils.shared_functions import save_results, setup_logging

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    voom: VoomResult
    zscores: pd.DataFrame
    clinical: pd.DataFrame
    zscore_cohort: MatchedCohort
    expression_cohort: MatchedCohort
    clusters: ClusterResult
    cluster_survival: SurvivalComparison
    gene_survival: SurvivalComparison = None
    gene: str = None


def run_pipeline(expression_file, clinical_file, gene=None, descriptor_row='auto', on_collision='error',
                 n_genes=CONFIG['top_variance_genes'], n_clusters=CONFIG['n_clusters'],
                 random_state=CONFIG['random_seed'], z_threshold=CONFIG['z_threshold']):
    """
    Run every stage from raw files to survival comparisons.

    Args:
        expression_file (str): Tab-delimited count matrix.
        clinical_file (str): Tab-delimited field-by-patient clinical file.
        gene (str, optional): Gene symbol for the single-gene comparison.
        descriptor_row (str): Descriptor row policy of the expression loader.
        on_collision (str): Policy when two tumor samples belong to one patient.
        n_genes (int): Number of top-variance genes used for clustering.
        n_clusters (int): Number of k-means clusters.
        random_state (int): K-means seed.
        z_threshold (float): Absolute z-score marking a gene as dysregulated.

    Returns:
        PipelineResult
    """
    counts = load_expression_matrix(expression_file, descriptor_row=descriptor_row)
    filtered = filter_low_expression(counts, max_zero_fraction=CONFIG['max_zero_fraction'])
    control_columns, tumor_columns = split_samples(filtered.columns)

    voom = variance_stabilize(filtered, tumor_columns, span=CONFIG['lowess_span'])
    zscores = compute_zscores(voom.expression, control_columns, tumor_columns)
    zscores = rename_to_patient_ids(zscores, on_collision=on_collision)

    tumor_expression = rename_to_patient_ids(voom.expression[tumor_columns], on_collision=on_collision)
    tumor_expression.index = pd.Index([gene_symbol(g) for g in tumor_expression.index], name='gene')

    clinical = process_clinical(load_clinical_table(clinical_file))
    zscore_cohort = match_cohort(clinical, zscores)
    expression_cohort = match_cohort(clinical, tumor_expression)

    gene_result = None
    if gene is not None:
        gene_result = gene_survival(zscore_cohort, gene, threshold=z_threshold)

    clusters, cluster_comparison = cluster_survival(
        expression_cohort, n_genes=n_genes, n_clusters=n_clusters, random_state=random_state
    )

    return PipelineResult(
        voom=voom,
        zscores=zscores,
        clinical=clinical,
        zscore_cohort=zscore_cohort,
        expression_cohort=expression_cohort,
        clusters=clusters,
        cluster_survival=cluster_comparison,
        gene_survival=gene_result,
        gene=gene,
    )


def write_outputs(result, output_dir):
    """Write the derived tables and plots of a pipeline run."""
    tables_dir = os.path.join(output_dir, CONFIG['tables_dir'])
    plots_dir = os.path.join(output_dir, CONFIG['plots_dir'])

    save_results(result.zscores, tables_dir, 'tumor_zscores.csv')
    save_results(result.clinical, tables_dir, 'clinical_processed.csv')
    save_results(result.clusters.labels.to_frame(), tables_dir, 'cluster_labels.csv')
    save_results(result.clusters.pca, tables_dir, 'cluster_pca.csv')
    save_results(result.cluster_survival.summary, tables_dir, 'cluster_survival_summary.csv', index=False)
    plot_survival_curves(result.cluster_survival, 'Survival by k-means cluster', 'cluster_survival', plots_dir)
    if 'PC2' in result.clusters.pca.columns:
        plot_pca_clusters(result.clusters.pca, result.clusters.explained_variance, 'cluster_pca', plots_dir)

    if result.gene_survival is not None:
        save_results(result.gene_survival.summary, tables_dir, f'{result.gene}_survival_summary.csv', index=False)
        plot_survival_curves(result.gene_survival, f'Survival by {result.gene} dysregulation',
                             f'{result.gene}_survival', plots_dir)


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Run the TCGA expression and survival pipeline')
    parser.add_argument('--expression-file', default=CONFIG['expression_file'],
                        help='Tab-delimited RNA-seq count matrix')
    parser.add_argument('--clinical-file', default=CONFIG['clinical_file'],
                        help='Tab-delimited clinical file (fields x patients)')
    parser.add_argument('--gene', default=None,
                        help='Gene symbol for the dysregulation survival comparison')
    parser.add_argument('--output-dir', default=None,
                        help='Directory for tables, plots and the processing log')
    parser.add_argument('--top-genes', type=int, default=CONFIG['top_variance_genes'],
                        help='Number of top-variance genes used for clustering')
    parser.add_argument('--clusters', type=int, default=CONFIG['n_clusters'],
                        help='Number of k-means clusters')
    parser.add_argument('--seed', type=int, default=CONFIG['random_seed'],
                        help='Random seed for k-means')
    parser.add_argument('--descriptor-row', choices=DESCRIPTOR_ROW_POLICIES, default='auto',
                        help='How to treat the first data row of the expression file')
    parser.add_argument('--on-collision', choices=COLLISION_POLICIES, default='error',
                        help='What to do when two tumor samples share a patient id')
    parser.add_argument('--log-level', default='INFO',
                        help='Logging level')
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    matplotlib.use('Agg')
    log_file = os.path.join(args.output_dir, CONFIG['log_file']) if args.output_dir else None
    setup_logging(args.log_level, log_file)

    result = run_pipeline(
        args.expression_file,
        args.clinical_file,
        gene=args.gene,
        descriptor_row=args.descriptor_row,
        on_collision=args.on_collision,
        n_genes=args.top_genes,
        n_clusters=args.clusters,
        random_state=args.seed,
    )
    if args.output_dir:
        write_outputs(result, args.output_dir)

    print(f"Matched patients: {len(result.expression_cohort.patients)}")
    print(f"Cluster log-rank p-value: {result.cluster_survival.p_value:.4g}")
    if result.gene_survival is not None:
        print(f"{args.gene} log-rank p-value: {result.gene_survival.p_value:.4g}")
    return result


if __name__ == '__main__':
    main()
