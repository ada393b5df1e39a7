import logging
from dataclasses import dataclass

import pandas as pd

from ..exceptions import DataFormatError

logger = logging.getLogger(__name__)


@dataclass
class MatchedCohort:
    """Clinical rows and expression columns for the same patients, in the same order."""
    clinical: pd.DataFrame
    expression: pd.DataFrame
    dropped_clinical: int = 0
    dropped_expression: int = 0

    @property
    def patients(self):
        return self.expression.columns.tolist()


def match_cohort(clinical, matrix):
    """
    Intersect patients between a clinical table (indexed by patient id) and
    an expression-derived matrix (columns are patient ids).

    Patients present on only one side are dropped and counted. The common
    order follows the matrix columns.
    """
    clinical_ids = set(clinical.index)
    common = [p for p in matrix.columns if p in clinical_ids]
    if not common:
        logger.error("No patients shared between clinical and expression data")
        raise DataFormatError("Clinical and expression data have no patient ids in common")

    dropped_clinical = len(clinical) - len(common)
    dropped_expression = matrix.shape[1] - len(common)
    logger.info(
        f"Matched {len(common)} patients; dropped {dropped_clinical} clinical-only "
        f"and {dropped_expression} expression-only patients"
    )
    return MatchedCohort(
        clinical=clinical.loc[common],
        expression=matrix.loc[:, common],
        dropped_clinical=dropped_clinical,
        dropped_expression=dropped_expression,
    )
