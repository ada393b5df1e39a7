"""
Pipeline configuration.

Constants shared by the data processing and survival analysis modules.
CLI flags in ``tcga_survival.pipeline`` override the per-run entries.
"""

CONFIG = {
    'expression_file': 'data/expression_counts.txt',
    'clinical_file': 'data/clinical.txt',
    'output_dir': 'output',
    'tables_dir': 'tables',
    'plots_dir': 'plots',
    'log_file': 'processing_log.txt',
    'delimiter': '\t',
    # Low-expression filter
    'max_zero_fraction': 0.5,
    # Variance stabilizer
    'lowess_span': 0.5,
    # Dysregulation threshold (two-sided 95% normal approximation)
    'z_threshold': 1.96,
    # Clustering
    'top_variance_genes': 1000,
    'n_clusters': 2,
    'random_seed': 0,
    'kmeans_n_init': 10,
    # Barcode convention, e.g. TCGA-A1-A0SB-01A-11R-A144-07
    'barcode': {
        'patient_length': 12,
        'sample_type_index': 13,
        'tumor_code': '0',
        'control_code': '1',
        'separator': '-',
    },
    'columns': {
        'vital_status': 'vital_status',
        'days_to_death': 'days_to_death',
        'days_to_last_followup': 'days_to_last_followup',
        'survival_time': 'new_death',
        'event': 'death_event',
        'has_survival_time': 'has_survival_time',
    },
    'alive_status': 'alive',
}
