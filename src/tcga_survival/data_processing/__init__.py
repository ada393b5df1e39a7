"""
Data Processing module for RNA-seq expression and clinical data.

This package provides utilities for:
- Loading and filtering gene-by-sample count matrices
- Variance stabilization and z-scores against control samples
- Clinical survival time and event derivation
- Matching patients between expression and clinical data
"""

from .utils import load_table, normalize_patient_id, sample_type, create_sample_map
from .expression import (
    load_expression_matrix,
    filter_low_expression,
    variance_stabilize,
    rename_to_patient_ids,
)
from .zscore import split_samples, compute_zscores
from .clinical import load_clinical_table, process_clinical
from .matching import MatchedCohort, match_cohort
