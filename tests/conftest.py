import numpy as np
import pytest


def barcode(patient_number, sample_code):
    """e.g. (3, '01') -> 'TCGA-AB-0003-01A-11R-A000-07'"""
    return f"TCGA-AB-{patient_number:04d}-{sample_code}A-11R-A000-07"


def write_expression_file(path, genes, samples, values, descriptor=True):
    lines = ["\t".join(["Hybridization REF"] + list(samples))]
    if descriptor:
        lines.append("\t".join(["gene_id"] + ["raw_count"] * len(samples)))
    for gene, row in zip(genes, values):
        lines.append("\t".join([gene] + [str(v) for v in row]))
    path.write_text("\n".join(lines) + "\n")
    return path


def write_clinical_file(path, records):
    """records: list of (patient_barcode, vital_status, days_to_death, days_to_last_followup)"""
    fields = ["vital_status", "days_to_death", "days_to_last_followup"]
    lines = ["\t".join(["Hybridization REF"] + [r[0] for r in records])]
    for i, field in enumerate(fields, start=1):
        lines.append("\t".join([field] + [str(r[i]) for r in records]))
    path.write_text("\n".join(lines) + "\n")
    return path


@pytest.fixture
def synthetic_study(tmp_path):
    """
    40 genes, 4 control samples (patients 1-4) and 8 tumor samples
    (patients 1-8). GENE0 is strongly over-expressed in tumors of patients 1-4.
    Clinical data covers patients 2-9; patient 9 has no expression.
    """
    rng = np.random.RandomState(7)
    genes = [f"GENE{i}|{1000 + i}" for i in range(40)]
    controls = [barcode(p, '11') for p in range(1, 5)]
    tumors = [barcode(p, '01') for p in range(1, 9)]
    samples = controls + tumors
    counts = rng.poisson(lam=200, size=(len(genes), len(samples)))
    for j, sample in enumerate(samples):
        if sample in tumors[:4]:
            counts[0, j] = 5000
    # half of the tumors share a second expression programme
    counts[1:11, len(controls) + 4:] = rng.poisson(lam=2000, size=(10, 4))
    expression_file = write_expression_file(tmp_path / "expression.txt", genes, samples, counts)

    records = []
    for p in range(2, 10):
        patient = f"tcga.ab.{p:04d}"
        if p % 2 == 0:
            records.append((patient, "dead", 100 * p, "NA"))
        else:
            records.append((patient, "alive", "NA", 150 * p))
    clinical_file = write_clinical_file(tmp_path / "clinical.txt", records)
    return {
        'expression_file': expression_file,
        'clinical_file': clinical_file,
        'controls': controls,
        'tumors': tumors,
        'genes': genes,
    }
