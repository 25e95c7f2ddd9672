"""Tests for saving and loading trained models."""

from __future__ import annotations

import pickle

import numpy as np
import pytest

from mangrove_lulc.domain.exceptions import DataError, LulcException
from mangrove_lulc.domain.models import PixelSamples
from mangrove_lulc.ml.classifier import train
from mangrove_lulc.ml.persistence import load_model, save_model


def _samples():
    rng = np.random.default_rng(4)
    values = np.vstack([rng.normal(10.0, 1.0, (20, 2)), rng.normal(30.0, 1.0, (20, 2))])
    return PixelSamples(("G", "NIR"), values, [1] * 20 + [2] * 20)


@pytest.mark.parametrize("kind", ["maximum-likelihood", "random-forest"])
def test_saved_model_predicts_the_same(tmp_path, kind):
    model = train(_samples(), kind, tree_count=10)
    probe = np.array([[10.0, 10.0], [20.0, 20.0], [30.0, 30.0]])

    path = save_model(model, tmp_path / "models" / "model.pkl")
    loaded = load_model(path)

    assert loaded.kind is model.kind
    assert loaded.band_names == ("G", "NIR")
    assert loaded.training_counts == model.training_counts
    np.testing.assert_array_equal(loaded.predict(probe), model.predict(probe))


def test_missing_model_file(tmp_path):
    with pytest.raises(DataError):
        load_model(tmp_path / "nothing.pkl")


def test_file_without_model(tmp_path):
    path = tmp_path / "other.pkl"
    path.write_bytes(pickle.dumps({"not": "a model"}))
    with pytest.raises(DataError):
        load_model(path)


def test_only_models_can_be_saved(tmp_path):
    with pytest.raises(LulcException):
        save_model({"weights": [1, 2]}, tmp_path / "model.pkl")
