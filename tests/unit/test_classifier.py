"""Tests for training, sample prediction and raster prediction."""

from __future__ import annotations

import numpy as np
import pytest

from mangrove_lulc.classifier_config import ModelKind
from mangrove_lulc.domain.exceptions import (
    ConfigurationError,
    DataError,
    InsufficientSamplesError,
    ModelingError,
    SamplingError,
)
from mangrove_lulc.domain.models import PixelSamples, Raster, Split
from mangrove_lulc.ml.classifier import draw_training_subsample, iter_row_blocks, predict, predict_raster, train
from mangrove_lulc.ml.forest import RandomForestModel
from mangrove_lulc.ml.gaussian import GaussianMaximumLikelihood


def _clusters(counts, seed=0):
    """Gaussian blobs: class ``c`` is centered on ``(10 * c, 10 * c)``."""
    rng = np.random.default_rng(seed)
    values, labels = [], []
    for class_id, n in counts.items():
        values.append(rng.normal(10.0 * class_id, 1.0, size=(n, 2)))
        labels.extend([class_id] * n)
    return PixelSamples(("b1", "b2"), np.vstack(values), labels)


def _raster(rows=5, cols=4):
    band = np.tile(np.where(np.arange(cols) < cols // 2, 10.0, 20.0), (rows, 1))
    return Raster(data=np.stack([band, band]), band_names=("b1", "b2"), crs="EPSG:32651")


def test_model_kind_selects_variant():
    samples = _clusters({1: 20, 2: 20})

    assert isinstance(train(samples, ModelKind.MAXIMUM_LIKELIHOOD), GaussianMaximumLikelihood)
    assert isinstance(train(samples, "rf", tree_count=5), RandomForestModel)


def test_unknown_model_kind():
    with pytest.raises(ConfigurationError):
        train(_clusters({1: 5, 2: 5}), "svm")


def test_subsample_is_clamped_to_available_pixels():
    model = train(_clusters({1: 30, 2: 4}), "maximum-likelihood", sample_size_per_class=10)

    assert model.training_counts == {1: 10, 2: 4}
    assert model.available_counts == {1: 30, 2: 4}
    assert model.ni.tolist() == [10.0, 4.0]


def test_subsample_of_a_class_ignores_other_classes():
    both = _clusters({1: 50, 2: 50})
    alone = both.subset(both.class_ids == 1)

    indices_both, _, _ = draw_training_subsample(both, 10, seed=3)
    indices_alone, _, _ = draw_training_subsample(alone, 10, seed=3)

    class_one = indices_both[both.class_ids[indices_both] == 1]
    np.testing.assert_array_equal(class_one, indices_alone)


def test_required_class_without_pixels():
    with pytest.raises(InsufficientSamplesError) as exc_info:
        train(_clusters({1: 10, 2: 10}), "maximum-likelihood", classes=[1, 2, 3])

    error = exc_info.value
    assert error.class_id == 3
    assert isinstance(error, ModelingError)
    assert isinstance(error, SamplingError)


def test_negative_seed_is_rejected():
    with pytest.raises(ConfigurationError) as exc_info:
        train(_clusters({1: 10, 2: 10}), "maximum-likelihood", seed=-1)

    assert exc_info.value.config_key == "seed"


def test_negative_class_code_is_rejected():
    samples = PixelSamples(("b1", "b2"), np.zeros((4, 2)), [1, 1, -2, -2])
    with pytest.raises(DataError):
        draw_training_subsample(samples, 10, seed=1)


def test_only_training_rows_are_used():
    samples = _clusters({1: 10, 2: 10})
    splits = [Split.TRAINING if i % 2 == 0 else Split.VALIDATION for i in range(len(samples))]
    tagged = PixelSamples(samples.band_names, samples.values, samples.class_ids, splits=splits)

    model = train(tagged, "maximum-likelihood")

    assert model.training_counts == {1: 5, 2: 5}


def test_incomplete_rows_are_ignored():
    samples = _clusters({1: 10, 2: 10})
    values = samples.values.copy()
    values[0, 1] = np.nan
    with_gap = PixelSamples(samples.band_names, values, samples.class_ids)

    model = train(with_gap, "maximum-likelihood")

    assert model.available_counts == {1: 9, 2: 10}
    assert np.isfinite(model.mean).all()


def test_maximum_likelihood_is_deterministic():
    samples = _clusters({1: 40, 2: 40})

    first = train(samples, "maximum-likelihood", sample_size_per_class=15, seed=11)
    second = train(samples, "maximum-likelihood", sample_size_per_class=15, seed=11)

    np.testing.assert_array_equal(first.mean, second.mean)
    np.testing.assert_array_equal(first.cov, second.cov)


def test_random_forest_is_deterministic():
    samples = _clusters({1: 40, 2: 40, 3: 40})
    probe = _clusters({1: 10, 2: 10, 3: 10}, seed=1).values

    first = train(samples, "random-forest", tree_count=15, seed=5)
    second = train(samples, "random-forest", tree_count=15, seed=5)

    np.testing.assert_array_equal(first.predict(probe), second.predict(probe))
    np.testing.assert_array_equal(first.votes(probe), second.votes(probe))


def test_random_forest_separates_clusters():
    model = train(_clusters({1: 40, 2: 40}), "random-forest", tree_count=25, seed=5)

    assert model.classes_.tolist() == [1, 2]
    assert model.predict(np.array([[10.0, 10.0], [20.0, 20.0]])).tolist() == [1, 2]
    assert model.votes(np.array([[10.0, 10.0]])).sum() == 25


def test_predict_samples_marks_incomplete_rows():
    model = train(_clusters({1: 20, 2: 20}), "maximum-likelihood")
    samples = PixelSamples(("b1", "b2"), [[10.0, 10.0], [np.nan, 20.0], [20.0, 20.0]], [1, 2, 2])

    assert predict(model, samples).tolist() == [1, 0, 2]


@pytest.mark.parametrize("kind", ["maximum-likelihood", "random-forest"])
def test_predict_raster_keeps_georeference(kind):
    model = train(_clusters({1: 30, 2: 30}), kind, tree_count=10)
    raster = _raster()

    classified = predict_raster(model, raster)

    assert classified.shape == raster.shape
    assert classified.geotransform == raster.geotransform
    assert classified.crs == raster.crs
    assert classified.data.dtype == np.int32
    np.testing.assert_array_equal(classified.data[:, :2], 1)
    np.testing.assert_array_equal(classified.data[:, 2:], 2)
    assert classified.class_counts() == {1: 10, 2: 10}


def test_missing_cells_receive_nodata():
    model = train(_clusters({1: 30, 2: 30}), "maximum-likelihood")
    raster = _raster()
    raster = Raster(data=raster.data.copy(), band_names=raster.band_names, nodata=-9999.0)
    raster.data[0, 1, 1] = np.nan
    raster.data[1, 3, 2] = -9999.0

    classified = predict_raster(model, raster, nodata=0)

    assert classified.data[1, 1] == 0
    assert classified.data[3, 2] == 0
    assert classified.class_counts() == {1: 9, 2: 9}


def test_block_size_does_not_change_output():
    model = train(_clusters({1: 30, 2: 30}), "maximum-likelihood")
    raster = _raster(rows=7, cols=6)

    whole = predict_raster(model, raster, block_rows=256)
    by_row = predict_raster(model, raster, block_rows=1)
    uneven = predict_raster(model, raster, block_rows=3)

    np.testing.assert_array_equal(whole.data, by_row.data)
    np.testing.assert_array_equal(whole.data, uneven.data)


def test_iter_row_blocks_covers_every_row():
    assert list(iter_row_blocks(7, 3)) == [(0, 3), (3, 6), (6, 7)]
    with pytest.raises(ConfigurationError):
        list(iter_row_blocks(7, 0))


def test_nodata_must_not_be_a_class_code():
    model = train(_clusters({1: 30, 2: 30}), "maximum-likelihood")
    with pytest.raises(ConfigurationError):
        predict_raster(model, _raster(), nodata=2)


def test_band_layout_must_match_model():
    model = train(_clusters({1: 30, 2: 30}), "maximum-likelihood")
    raster = Raster(data=_raster().data, band_names=("NIR", "R"))
    with pytest.raises(DataError):
        predict_raster(model, raster)
