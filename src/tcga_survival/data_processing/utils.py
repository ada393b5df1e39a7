import argparse
import logging
import re

import pandas as pd

from ..config import CONFIG
from ..exceptions import DataFormatError

logger = logging.getLogger(__name__)

BARCODE = CONFIG['barcode']
PATIENT_ID_LENGTH = BARCODE['patient_length']
SAMPLE_TYPE_INDEX = BARCODE['sample_type_index']
TUMOR_CODE = BARCODE['tumor_code']
CONTROL_CODE = BARCODE['control_code']


def load_table(path: str, sep: str = CONFIG['delimiter'], **kwargs) -> pd.DataFrame:
    """Read a delimited text file, handling UTF-8 BOM if present."""
    try:
        df = pd.read_csv(path, sep=sep, encoding='utf-8-sig', **kwargs)
    except FileNotFoundError:
        logger.error(f"File not found: {path}")
        raise
    logger.info(f"Loaded {path} with shape {df.shape}")
    return df


def normalize_patient_id(identifier: str) -> str:
    """
    Reduce a sample barcode to its canonical patient id,
    e.g. 'tcga.a1.a0sb.01a.11r' -> 'TCGA-A1-A0SB'.
    """
    patient = str(identifier).strip()[:PATIENT_ID_LENGTH]
    return re.sub(r'[._]', BARCODE['separator'], patient).upper()


def sample_type(identifier: str) -> str:
    """Return the sample-type code character of a barcode ('0' tumor, '1' normal)."""
    identifier = str(identifier)
    if len(identifier) <= SAMPLE_TYPE_INDEX:
        raise DataFormatError(
            f"Barcode '{identifier}' is too short to carry a sample type "
            f"(needs at least {SAMPLE_TYPE_INDEX + 1} characters)"
        )
    return identifier[SAMPLE_TYPE_INDEX]


def is_tumor(identifier: str) -> bool:
    return sample_type(identifier) == TUMOR_CODE


def is_control(identifier: str) -> bool:
    return sample_type(identifier) == CONTROL_CODE


def create_sample_map(barcodes) -> dict[str, tuple[str, str]]:
    """
    Build a mapping from sample barcode to (patient id, sample type code).
    Barcodes too short to carry a sample type are mapped with an empty code.
    """
    mapping: dict[str, tuple[str, str]] = {}
    for barcode in barcodes:
        try:
            code = sample_type(barcode)
        except DataFormatError:
            code = ''
        mapping[barcode] = (normalize_patient_id(barcode), code)
    return mapping


def main():
    """Command-line interface for inspecting the barcodes of an expression file."""
    parser = argparse.ArgumentParser(description='List sample barcode → patient id map from an expression header')
    parser.add_argument('expression_file', help='Path to tab-delimited expression matrix')
    args = parser.parse_args()
    header = load_table(args.expression_file, nrows=0)
    for barcode, (patient, code) in create_sample_map(header.columns[1:]).items():
        print(f"{barcode}\t{patient}\t{code}")


if __name__ == '__main__':
    main()
