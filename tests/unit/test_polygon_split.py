"""Tests for the stratified polygon split."""

from __future__ import annotations

import pytest
import shapely

from mangrove_lulc.domain.exceptions import ConfigurationError, DataError, SamplingError
from mangrove_lulc.domain.models import Polygon, Split
from mangrove_lulc.sampling.polygon_split import count_polygons_per_class, split


def _polygons(counts):
    """``counts`` maps class id -> number of polygons; ids are consecutive."""
    polygons = []
    next_id = 1
    for class_id, n in counts.items():
        for _ in range(n):
            polygons.append(Polygon(id=next_id, class_id=class_id, geometry=shapely.box(next_id, 0, next_id + 1, 1)))
            next_id += 1
    return polygons


def _ids(polygons):
    return [p.id for p in polygons]


def test_two_classes_four_polygons_each():
    result = split(_polygons({1: 4, 2: 4}), train_fraction=0.7, seed=1234)

    assert result.counts() == {1: (3, 1), 2: (3, 1)}
    assert _ids(result.training) == [1, 3, 4, 5, 7, 8]
    assert _ids(result.validation) == [2, 6]
    assert all(p.split is Split.TRAINING for p in result.training)
    assert all(p.split is Split.VALIDATION for p in result.validation)


def test_same_seed_gives_same_ids():
    polygons = _polygons({1: 4, 2: 4})

    first = split(polygons, train_fraction=0.7, seed=1234)
    second = split(polygons, train_fraction=0.7, seed=1234)

    assert _ids(first.training) == _ids(second.training)
    assert _ids(first.validation) == _ids(second.validation)


def test_partition_does_not_depend_on_input_order():
    polygons = _polygons({1: 6, 2: 5, 3: 7})

    forward = split(polygons, train_fraction=0.6, seed=99)
    backward = split(list(reversed(polygons)), train_fraction=0.6, seed=99)

    assert set(_ids(forward.training)) == set(_ids(backward.training))
    assert set(_ids(forward.validation)) == set(_ids(backward.validation))


def test_class_draw_does_not_depend_on_other_classes():
    with_other = split(_polygons({1: 10, 2: 10}), train_fraction=0.5, seed=5)
    alone = split(_polygons({1: 10}), train_fraction=0.5, seed=5)

    class_one = {p.id for p in with_other.training if p.class_id == 1}
    assert class_one == set(_ids(alone.training))


@pytest.mark.parametrize("train_fraction", [0.1, 0.3, 0.5, 0.7, 0.9])
@pytest.mark.parametrize("counts", [{1: 1, 2: 2}, {1: 5, 2: 3, 3: 10}, {4: 7, 9: 13}])
def test_partition_is_complete_and_stratified(train_fraction, counts):
    polygons = _polygons(counts)

    result = split(polygons, train_fraction=train_fraction, seed=1234)

    training, validation = set(_ids(result.training)), set(_ids(result.validation))
    assert training | validation == set(_ids(polygons))
    assert not training & validation
    assert len(result.training) + len(result.validation) == len(polygons)
    for class_id, n in count_polygons_per_class(polygons).items():
        n_train = sum(1 for p in result.training if p.class_id == class_id)
        assert abs(n_train - round(train_fraction * n)) <= 1


def test_rounding_is_half_to_even():
    # round(0.5 * 5) == 2
    result = split(_polygons({1: 5}), train_fraction=0.5, seed=1)
    assert result.counts() == {1: (2, 3)}


def test_split_keeps_geometry_object():
    polygons = _polygons({1: 3})
    geometries = {p.id: p.geometry for p in polygons}

    result = split(polygons, train_fraction=0.7, seed=1234)

    for polygon in result.polygons:
        assert polygon.geometry is geometries[polygon.id]
    # Inputs are left untagged.
    assert all(p.split is None for p in polygons)


def test_single_polygon_class_is_tolerated_with_warning():
    result = split(_polygons({1: 1, 2: 4}), train_fraction=0.7, seed=1234)

    # round(0.7) == 1: the lone polygon trains, nothing validates class 1.
    assert result.counts()[1] == (1, 0)


def test_strict_mode_rejects_one_sided_class():
    with pytest.raises(SamplingError) as exc_info:
        split(_polygons({1: 4, 2: 1}), train_fraction=0.7, seed=1234, strict=True)

    assert exc_info.value.class_id == 2


def test_duplicate_ids_are_rejected():
    polygons = _polygons({1: 2}) + [Polygon(id=1, class_id=2, geometry=shapely.box(0, 0, 1, 1))]
    with pytest.raises(DataError):
        split(polygons)


def test_empty_polygon_set_is_rejected():
    with pytest.raises(DataError):
        split([])


@pytest.mark.parametrize("train_fraction", [0.0, 1.0, -0.2, 1.5])
def test_invalid_train_fraction(train_fraction):
    with pytest.raises(ConfigurationError):
        split(_polygons({1: 4}), train_fraction=train_fraction)


def test_negative_seed_is_rejected():
    with pytest.raises(ConfigurationError) as exc_info:
        split(_polygons({1: 4}), train_fraction=0.7, seed=-1)

    assert exc_info.value.config_key == "seed"


def test_negative_class_code_is_rejected():
    polygons = _polygons({1: 2}) + [Polygon(id=10, class_id=-3, geometry=shapely.box(10, 0, 11, 1))]
    with pytest.raises(DataError):
        split(polygons, train_fraction=0.5)
