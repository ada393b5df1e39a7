"""
Survival Analysis
Kaplan-Meier curves and log-rank comparisons between patient groups
"""

import logging
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
from lifelines import KaplanMeierFitter
from lifelines.statistics import multivariate_logrank_test

from ..config import CONFIG

logger = logging.getLogger(__name__)

COLUMNS = CONFIG['columns']
DYSREGULATED = 'dysregulated'
NORMAL = 'normal'


@dataclass
class SurvivalComparison:
    """Per-group survival curves plus the log-rank test across groups."""
    groups: pd.Series
    curves: dict = field(default_factory=dict)
    fitters: dict = field(default_factory=dict)
    summary: pd.DataFrame = None
    test_statistic: float = np.nan
    p_value: float = np.nan
    excluded: int = 0


def dysregulation_groups(zscores, gene, threshold=CONFIG['z_threshold']):
    """
    Label every patient 'dysregulated' (|z| >= threshold) or 'normal' for one gene.

    Undefined z-scores carry no signal and are labelled 'normal'.
    """
    if gene not in zscores.index:
        raise KeyError(f"Gene '{gene}' not found in z-score matrix")
    values = zscores.loc[gene]
    if isinstance(values, pd.DataFrame):
        logger.warning(f"Gene symbol '{gene}' occurs {len(values)} times; using the first row")
        values = values.iloc[0]

    undefined = int(values.isna().sum())
    if undefined:
        logger.info(f"{undefined} patients have an undefined z-score for {gene}")
    dysregulated = values.abs() >= threshold
    groups = pd.Series(np.where(dysregulated, DYSREGULATED, NORMAL), index=values.index, name=gene)
    logger.info(f"{gene}: {int(dysregulated.sum())} dysregulated, {int((~dysregulated).sum())} normal")
    return groups


def compare_survival(clinical, groups):
    """
    Fit Kaplan-Meier curves per group and run a log-rank test across groups.

    Parameters:
    -----------
    clinical : pd.DataFrame
        Processed clinical table indexed by patient id
    groups : pd.Series
        Group label per patient id

    Returns:
    --------
    SurvivalComparison
    """
    data = clinical[[COLUMNS['survival_time'], COLUMNS['event'], COLUMNS['has_survival_time']]].join(
        groups.rename('group'), how='inner'
    )
    usable = data[COLUMNS['has_survival_time']].astype(bool)
    excluded = int((~usable).sum())
    if excluded:
        logger.info(f"Excluding {excluded} patients without a survival time")
    data = data.loc[usable]

    result = SurvivalComparison(groups=data['group'], excluded=excluded)
    rows = []
    for label, group in data.groupby('group', sort=True):
        kmf = KaplanMeierFitter()
        kmf.fit(group[COLUMNS['survival_time']], group[COLUMNS['event']], label=str(label))
        result.fitters[label] = kmf
        result.curves[label] = kmf.survival_function_
        rows.append({
            'group': label,
            'n_patients': len(group),
            'n_events': int(group[COLUMNS['event']].sum()),
            'median_survival': kmf.median_survival_time_,
        })
    result.summary = pd.DataFrame(rows, columns=['group', 'n_patients', 'n_events', 'median_survival'])

    if len(result.fitters) < 2:
        logger.warning(f"Need at least two non-empty groups for a log-rank test, got {len(result.fitters)}")
        return result

    test = multivariate_logrank_test(
        data[COLUMNS['survival_time']], data['group'], data[COLUMNS['event']]
    )
    result.test_statistic = float(test.test_statistic)
    result.p_value = float(test.p_value)
    logger.info(f"Log-rank test across {len(result.fitters)} groups: "
                f"statistic={result.test_statistic:.3f}, p={result.p_value:.4g}")
    return result


def gene_survival(cohort, gene, threshold=CONFIG['z_threshold']):
    """Compare survival between dysregulated and normal patients for one gene of a z-score cohort."""
    groups = dysregulation_groups(cohort.expression, gene, threshold=threshold)
    return compare_survival(cohort.clinical, groups)
