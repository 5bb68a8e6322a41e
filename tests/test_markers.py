import pytest

from popcross.errors import DataFormatError
from popcross.markers import check_marker_order, marker_columns, subsample_markers


def test_subsample_returns_k_unique_markers_in_map_order(breeding_data):
    genotypes, genetic_map = subsample_markers(breeding_data.genotypes, breeding_data.genetic_map, 5, seed=7)
    markers = marker_columns(genotypes)
    assert len(markers) == 5
    assert len(set(markers)) == 5
    assert genetic_map["SNP"].tolist() == markers
    original = breeding_data.marker_names()
    assert [original.index(m) for m in markers] == sorted(original.index(m) for m in markers)
    assert genotypes["ID"].tolist() == breeding_data.genotypes["ID"].tolist()


def test_subsample_is_reproducible_with_seed(breeding_data):
    first, _ = subsample_markers(breeding_data.genotypes, breeding_data.genetic_map, 6, seed=11)
    second, _ = subsample_markers(breeding_data.genotypes, breeding_data.genetic_map, 6, seed=11)
    assert list(first.columns) == list(second.columns)


def test_subsample_keeps_everything_when_k_covers_all_markers(breeding_data):
    for k in (None, 12, 50):
        genotypes, genetic_map = subsample_markers(breeding_data.genotypes, breeding_data.genetic_map, k, seed=1)
        assert marker_columns(genotypes) == breeding_data.marker_names()
        assert len(genetic_map) == 12


def test_subsample_rejects_non_positive_k(breeding_data):
    with pytest.raises(DataFormatError, match="at least 1"):
        subsample_markers(breeding_data.genotypes, breeding_data.genetic_map, 0, seed=1)


def test_order_mismatch_is_reported(breeding_data):
    shuffled = breeding_data.genetic_map.iloc[::-1].reset_index(drop=True)
    with pytest.raises(DataFormatError, match="position 0"):
        check_marker_order(breeding_data.genotypes, shuffled)
    with pytest.raises(DataFormatError, match="12 markers"):
        subsample_markers(breeding_data.genotypes, breeding_data.genetic_map.iloc[:10], 3, seed=1)
