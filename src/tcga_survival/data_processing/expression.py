"""
Expression Processing
Loads RNA-seq count matrices, filters lowly expressed genes and applies
the voom variance-stabilizing transform.
"""

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
from statsmodels.nonparametric.smoothers_lowess import lowess

from ..config import CONFIG
from ..exceptions import DataFormatError, IdentifierCollisionError
from .utils import load_table, normalize_patient_id

logger = logging.getLogger(__name__)

DESCRIPTOR_ROW_POLICIES = ('auto', 'first', 'none')
COLLISION_POLICIES = ('error', 'first')
MISSING_MARKERS = ('NA', 'NAN', 'N/A', 'NULL', 'NONE')


@dataclass
class VoomResult:
    """Output of the variance-stabilizing transform."""
    expression: pd.DataFrame
    weights: pd.DataFrame
    lib_size: pd.Series
    design: pd.DataFrame


def _is_descriptor_row(row: pd.Series) -> bool:
    """A descriptor row carries labels such as 'raw_count' in every cell."""
    cells = row.astype(str).str.strip()
    labelled = cells.ne('') & ~cells.str.upper().isin(MISSING_MARKERS)
    return bool(labelled.all()) and pd.to_numeric(cells, errors='coerce').isna().all()


def load_expression_matrix(path, descriptor_row='auto', sep=CONFIG['delimiter']):
    """
    Load a gene-by-sample count matrix from a delimited text file.

    Parameters:
    -----------
    path : str
        File with a header row of sample barcodes and a first column of
        gene labels ("SYMBOL|ENTREZID").
    descriptor_row : str
        'auto' drops the first data row only if every cell holds a
        non-numeric label (blank or NA cells are data, not labels),
        'first' always drops it, 'none' keeps it.
    sep : str
        Field delimiter.

    Returns:
    --------
    pd.DataFrame
        Expression matrix (genes x samples) of floats

    Raises:
    -------
    DataFormatError
        On a malformed header or any cell that is not a number.
    """
    if descriptor_row not in DESCRIPTOR_ROW_POLICIES:
        raise ValueError(f"descriptor_row must be one of {DESCRIPTOR_ROW_POLICIES}, got {descriptor_row!r}")

    # pandas silently renames duplicated headers, so check the raw header first
    header = load_table(path, sep=sep, header=None, nrows=1, dtype=str).iloc[0].tolist()
    samples = header[1:]
    if len(samples) == 0:
        raise DataFormatError(f"{path}: header has no sample columns")
    duplicated = pd.Index(samples)[pd.Index(samples).duplicated()].unique().tolist()
    if duplicated:
        raise DataFormatError(f"{path}: duplicated sample columns in header: {duplicated[:5]}")

    raw = load_table(path, sep=sep, index_col=0, dtype=str, keep_default_na=False)
    raw.index.name = 'gene'
    if raw.empty:
        raise DataFormatError(f"{path}: no data rows")

    if descriptor_row == 'first' or (descriptor_row == 'auto' and _is_descriptor_row(raw.iloc[0])):
        logger.info(f"Dropping descriptor row '{raw.index[0]}'")
        raw = raw.iloc[1:]

    matrix = raw.apply(pd.to_numeric, errors='coerce')
    bad = matrix.isna()
    if bad.values.any():
        gene_pos, sample_pos = np.argwhere(bad.values)[0]
        raise DataFormatError(
            f"{path}: non-numeric value {raw.iat[gene_pos, sample_pos]!r} "
            f"at gene '{raw.index[gene_pos]}', sample '{raw.columns[sample_pos]}' "
            f"({int(bad.values.sum())} bad cells in total)"
        )

    matrix = matrix.astype(float)
    logger.info(f"Loaded expression matrix with {matrix.shape[0]} genes and {matrix.shape[1]} samples")
    return matrix


def filter_low_expression(matrix, max_zero_fraction=CONFIG['max_zero_fraction']):
    """Drop genes whose fraction of exactly-zero counts exceeds max_zero_fraction."""
    zero_fraction = (matrix == 0).sum(axis=1) / matrix.shape[1]
    keep = zero_fraction <= max_zero_fraction
    filtered = matrix.loc[keep.to_numpy()]
    logger.info(
        f"Low-expression filter removed {int((~keep).sum())} of {len(matrix)} genes "
        f"(zero fraction > {max_zero_fraction:.0%})"
    )
    return filtered


def variance_stabilize(counts, treatment_columns, span=CONFIG['lowess_span']):
    """
    Apply the voom transform to a count matrix.

    Counts are converted to log2 counts-per-million. A linear model with an
    intercept and a treatment indicator is fitted to every gene, and a lowess
    trend of sqrt(residual standard deviation) against average log-count
    gives per-observation precision weights.

    Args:
        counts (pd.DataFrame): Filtered genes x samples counts.
        treatment_columns (iterable): Columns in the treatment (tumor) group.
        span (float): Lowess smoothing fraction.

    Returns:
        VoomResult: log2-CPM expression, precision weights, library sizes and design.
    """
    treatment = set(treatment_columns)
    unknown = treatment.difference(counts.columns)
    if unknown:
        raise DataFormatError(f"Treatment columns not in matrix: {sorted(unknown)[:5]}")

    n_genes, n_samples = counts.shape
    indicator = np.array([1.0 if c in treatment else 0.0 for c in counts.columns])
    if n_samples < 3:
        raise DataFormatError(f"Variance stabilization needs at least 3 samples, got {n_samples}")
    if indicator.min() == indicator.max():
        raise DataFormatError("Design needs both treatment and non-treatment samples")

    design = pd.DataFrame(
        {'intercept': 1.0, 'treatment': indicator},
        index=counts.columns,
    )
    values = counts.to_numpy(dtype=float)
    lib_size = values.sum(axis=0)
    log_cpm = np.log2((values + 0.5) / (lib_size + 1.0) * 1e6)

    x = design.to_numpy()
    coefficients, _, rank, _ = np.linalg.lstsq(x, log_cpm.T, rcond=None)
    fitted = (x @ coefficients).T
    residual_df = n_samples - rank
    sigma = np.sqrt(((log_cpm - fitted) ** 2).sum(axis=1) / residual_df)

    average_log_count = log_cpm.mean(axis=1) + np.mean(np.log2(lib_size + 1.0)) - np.log2(1e6)
    trend = lowess(np.sqrt(sigma), average_log_count, frac=span, return_sorted=True)

    fitted_log_count = np.log2(2 ** fitted * 1e-6 * (lib_size + 1.0))
    predicted = np.interp(fitted_log_count, trend[:, 0], trend[:, 1])
    with np.errstate(divide='ignore'):
        weights = 1.0 / predicted ** 4
    if not np.isfinite(weights).all():
        logger.warning("Mean-variance trend is degenerate for some observations; their weights are not finite")

    expression = pd.DataFrame(log_cpm, index=counts.index, columns=counts.columns)
    weights = pd.DataFrame(weights, index=counts.index, columns=counts.columns)
    logger.info(f"Applied voom transform to {n_genes} genes x {n_samples} samples "
                f"({int(indicator.sum())} treatment samples)")
    return VoomResult(
        expression=expression,
        weights=weights,
        lib_size=pd.Series(lib_size, index=counts.columns, name='lib_size'),
        design=design,
    )


def rename_to_patient_ids(matrix, on_collision='error'):
    """
    Rewrite sample barcodes as canonical patient ids.

    With on_collision='error' two columns of the same patient raise
    IdentifierCollisionError; with 'first' the first column in source order
    is kept and later ones are dropped.
    """
    if on_collision not in COLLISION_POLICIES:
        raise ValueError(f"on_collision must be one of {COLLISION_POLICIES}, got {on_collision!r}")

    patient_ids = pd.Index([normalize_patient_id(c) for c in matrix.columns])
    duplicated = patient_ids.duplicated(keep='first')
    if duplicated.any():
        collided = matrix.columns[duplicated].tolist()
        if on_collision == 'error':
            raise IdentifierCollisionError(
                f"{len(collided)} sample columns collide on a patient id: {collided[:5]}"
            )
        logger.warning(f"Dropping {len(collided)} sample columns that share a patient id: {collided[:5]}")

    renamed = matrix.loc[:, ~duplicated].copy()
    renamed.columns = patient_ids[~duplicated]
    return renamed
