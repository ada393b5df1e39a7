import numpy as np
import pandas as pd
import pytest

from tcga_survival.data_processing.matching import MatchedCohort
from tcga_survival.survival_analysis import (
    cluster_samples,
    cluster_survival,
    compare_survival,
    dysregulation_groups,
    gene_survival,
    project_pca,
    select_top_variance_genes,
)


def make_clinical(times, events, usable=None):
    patients = [f"P{i}" for i in range(len(times))]
    if usable is None:
        usable = [True] * len(times)
    return pd.DataFrame(
        {
            "new_death": [t if u else np.nan for t, u in zip(times, usable)],
            "death_event": events,
            "has_survival_time": usable,
        },
        index=pd.Index(patients, name="patient_id"),
    )


def two_programme_matrix():
    """6 samples: P0-P3 share one expression programme, P4-P5 another."""
    rng = np.random.RandomState(3)
    values = rng.normal(0, 0.1, size=(20, 6))
    values[:10, 4:] += 5.0
    return pd.DataFrame(values, index=[f"G{i}" for i in range(20)], columns=[f"P{i}" for i in range(6)])


def test_dysregulation_groups():
    zscores = pd.DataFrame(
        {"P0": [2.5, 0.0], "P1": [-1.96, 1.0], "P2": [0.3, np.nan], "P3": [np.nan, 5.0]},
        index=["TP53", "EGFR"],
    )
    groups = dysregulation_groups(zscores, "TP53")
    assert groups.to_dict() == {"P0": "dysregulated", "P1": "dysregulated", "P2": "normal", "P3": "normal"}


def test_dysregulation_groups_unknown_gene():
    zscores = pd.DataFrame({"P0": [1.0]}, index=["TP53"])
    with pytest.raises(KeyError):
        dysregulation_groups(zscores, "BRCA1")


def test_compare_survival():
    clinical = make_clinical([100, 200, 300, 400, 50, 60, 70, 80], [1, 0, 1, 0, 1, 1, 1, 1])
    groups = pd.Series(["normal"] * 4 + ["dysregulated"] * 4, index=clinical.index)
    result = compare_survival(clinical, groups)

    assert set(result.curves) == {"normal", "dysregulated"}
    summary = result.summary.set_index("group")
    assert summary.loc["normal", "n_patients"] == 4
    assert summary.loc["dysregulated", "n_events"] == 4
    assert 0.0 <= result.p_value <= 1.0
    assert result.test_statistic >= 0.0
    assert result.excluded == 0


def test_compare_survival_excludes_missing_times():
    clinical = make_clinical([100, 200, 300, 400], [1, 0, 1, 0], usable=[True, False, True, True])
    groups = pd.Series(["a", "a", "b", "b"], index=clinical.index)
    result = compare_survival(clinical, groups)
    assert result.excluded == 1
    assert "P1" not in result.groups.index
    assert result.summary.set_index("group").loc["a", "n_patients"] == 1


def test_compare_survival_single_group_has_no_test():
    clinical = make_clinical([100, 200, 300], [1, 0, 1])
    groups = pd.Series(["normal"] * 3, index=clinical.index)
    result = compare_survival(clinical, groups)
    assert list(result.curves) == ["normal"]
    assert np.isnan(result.p_value)
    assert np.isnan(result.test_statistic)


def test_gene_survival_uses_cohort():
    clinical = make_clinical([10, 20, 30, 40], [1, 1, 0, 0])
    zscores = pd.DataFrame([[3.0, 2.0, 0.1, np.nan]], index=["KRAS"], columns=clinical.index)
    cohort = MatchedCohort(clinical=clinical, expression=zscores)
    result = gene_survival(cohort, "KRAS")
    assert result.groups.to_dict() == {"P0": "dysregulated", "P1": "dysregulated", "P2": "normal", "P3": "normal"}
    assert not np.isnan(result.p_value)


def test_select_top_variance_genes():
    matrix = pd.DataFrame(
        {"P0": [0.0, 0.0, 0.0, np.nan], "P1": [1.0, 10.0, 0.0, 100.0], "P2": [2.0, 20.0, 0.0, -100.0]},
        index=["low", "high", "flat", "undefined"],
    )
    top = select_top_variance_genes(matrix, n_genes=2)
    assert list(top.index) == ["high", "low"]


def test_cluster_samples_separates_programmes():
    matrix = two_programme_matrix()
    labels = cluster_samples(matrix, n_clusters=2, random_state=0)
    assert labels[["P0", "P1", "P2", "P3"]].nunique() == 1
    assert labels[["P4", "P5"]].nunique() == 1
    assert labels["P0"] == "cluster_1"
    assert labels["P4"] == "cluster_2"


def test_cluster_samples_reproducible():
    matrix = two_programme_matrix()
    first = cluster_samples(matrix, n_clusters=2, random_state=42)
    second = cluster_samples(matrix, n_clusters=2, random_state=42)
    pd.testing.assert_series_equal(first, second)


def test_project_pca():
    matrix = two_programme_matrix()
    labels = cluster_samples(matrix)
    projection, explained = project_pca(matrix, labels)
    assert list(projection.columns) == ["PC1", "PC2", "cluster"]
    assert list(projection.index) == list(matrix.columns)
    assert explained[0] > 0.5


def test_cluster_survival():
    matrix = two_programme_matrix()
    clinical = make_clinical([100, 200, 300, 400, 20, 30], [0, 0, 1, 0, 1, 1])
    cohort = MatchedCohort(clinical=clinical, expression=matrix)
    clusters, comparison = cluster_survival(cohort, n_genes=10, n_clusters=2, random_state=0)
    assert len(clusters.genes) == 10
    assert set(clusters.labels) == {"cluster_1", "cluster_2"}
    assert set(comparison.curves) == {"cluster_1", "cluster_2"}
    assert 0.0 <= comparison.p_value <= 1.0
