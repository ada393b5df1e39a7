import logging

import numpy as np
import pandas as pd

from ..config import CONFIG
from ..exceptions import DataFormatError
from .utils import load_table, normalize_patient_id

logger = logging.getLogger(__name__)

COLUMNS = CONFIG['columns']
REQUIRED_FIELDS = [COLUMNS['vital_status'], COLUMNS['days_to_death'], COLUMNS['days_to_last_followup']]


def load_clinical_table(path: str) -> pd.DataFrame:
    """
    Load a field-by-patient clinical file, transpose it to one row per
    patient and normalize field names to lowercase.
    """
    df = load_table(path, index_col=0, dtype=str)
    table = df.T
    table.columns = [str(c).strip().lower() for c in table.columns]
    table.index.name = 'barcode'

    missing = [c for c in REQUIRED_FIELDS if c not in table.columns]
    if missing:
        logger.error(f"Clinical file {path} is missing fields {missing}")
        raise DataFormatError(f"{path}: missing required clinical fields {missing}")

    logger.info(f"Loaded clinical table for {len(table)} patients with {table.shape[1]} fields")
    return table


def process_clinical(table: pd.DataFrame) -> pd.DataFrame:
    """
    Derive the survival time and event indicator for every patient.

    new_death is days_to_death when it is a number, otherwise
    days_to_last_followup; patients with neither keep NaN and are flagged
    has_survival_time=False. death_event is 1 unless vital_status is
    exactly 'alive'. The index is the normalized patient id.
    """
    missing = [c for c in REQUIRED_FIELDS if c not in table.columns]
    if missing:
        raise DataFormatError(f"Clinical table is missing required fields {missing}")

    result = table.copy()
    death = pd.to_numeric(result[COLUMNS['days_to_death']], errors='coerce')
    followup = pd.to_numeric(result[COLUMNS['days_to_last_followup']], errors='coerce')

    result[COLUMNS['survival_time']] = death.where(death.notna(), followup).astype(float)
    result[COLUMNS['has_survival_time']] = result[COLUMNS['survival_time']].notna()
    result[COLUMNS['event']] = np.where(result[COLUMNS['vital_status']] == CONFIG['alive_status'], 0, 1)

    result.index = pd.Index([normalize_patient_id(b) for b in result.index], name='patient_id')
    duplicated = result.index.duplicated(keep='first')
    if duplicated.any():
        logger.warning(f"Dropping {int(duplicated.sum())} duplicated clinical records: "
                       f"{result.index[duplicated].tolist()[:5]}")
        result = result.loc[~duplicated]

    excluded = int((~result[COLUMNS['has_survival_time']]).sum())
    if excluded:
        logger.warning(f"{excluded} patients have neither days_to_death nor days_to_last_followup "
                       f"and are excluded from survival analyses")
    logger.info(f"Processed clinical data for {len(result)} patients "
                f"({int(result[COLUMNS['event']].sum())} events)")
    return result
