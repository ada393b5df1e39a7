import logging

import numpy as np
import pandas as pd

from ..exceptions import DataFormatError
from .utils import CONTROL_CODE, TUMOR_CODE, sample_type

logger = logging.getLogger(__name__)


def split_samples(columns):
    """Partition sample barcodes into (control, tumor) lists by sample type code."""
    control, tumor, other = [], [], []
    for column in columns:
        code = sample_type(column)
        if code == CONTROL_CODE:
            control.append(column)
        elif code == TUMOR_CODE:
            tumor.append(column)
        else:
            other.append(column)
    if other:
        logger.warning(f"Ignoring {len(other)} samples that are neither tumor nor control: {other[:5]}")
    logger.info(f"Found {len(control)} control and {len(tumor)} tumor samples")
    return control, tumor


def gene_symbol(label: str) -> str:
    """'TP53|7157' -> 'TP53'"""
    return str(label).split('|', 1)[0]


def compute_zscores(matrix, control_columns, tumor_columns):
    """
    Express every tumor sample as a z-score against the control samples.

    Parameters:
    -----------
    matrix : pd.DataFrame
        Stabilized expression (genes x samples)
    control_columns : list
        Normal-tissue columns defining the reference distribution
    tumor_columns : list
        Columns to score

    Returns:
    --------
    pd.DataFrame
        Z-scores (gene symbols x tumor samples). Genes whose control
        standard deviation is zero or undefined are NaN in every column.
    """
    control_columns = list(control_columns)
    tumor_columns = list(tumor_columns)
    if not control_columns:
        raise DataFormatError("No control samples available for z-scores")
    if not tumor_columns:
        raise DataFormatError("No tumor samples available for z-scores")

    control = matrix[control_columns]
    mean = control.mean(axis=1)
    std = control.std(axis=1, ddof=1)
    # equal controls can leave a rounding-level std instead of an exact zero
    spread = control.max(axis=1) - control.min(axis=1)
    scale = control.abs().max(axis=1).clip(lower=1.0)
    undefined = ~(std > 0) | (spread <= np.finfo(float).eps * scale)
    std = std.where(~undefined, np.nan)

    zscores = matrix[tumor_columns].sub(mean, axis=0).div(std, axis=0)
    zscores.index = pd.Index([gene_symbol(g) for g in matrix.index], name='gene')

    if undefined.any():
        logger.warning(f"Control standard deviation is zero or undefined for {int(undefined.sum())} genes; "
                       f"their z-scores are NaN")
    logger.info(f"Computed z-scores for {zscores.shape[0]} genes x {zscores.shape[1]} tumor samples")
    return zscores
