"""Save and load trained classifier models."""

from __future__ import annotations

import os
import pickle  # nosec B403
from pathlib import Path

from ..domain.exceptions import DataError, LulcException
from .gaussian import GaussianMaximumLikelihood
from .forest import RandomForestModel

_MODEL_TYPES = (GaussianMaximumLikelihood, RandomForestModel)


def save_model(model, model_path) -> str:
    """Pickle ``model`` to ``model_path`` and return the path."""
    if not isinstance(model, _MODEL_TYPES):
        raise LulcException(f"Cannot save object of type {type(model).__name__} as a model")
    path = Path(model_path)
    if path.parent and not path.parent.exists():
        os.makedirs(path.parent, exist_ok=True)
    with path.open("wb") as fh:
        pickle.dump(model, fh, protocol=pickle.HIGHEST_PROTOCOL)
    return str(path)


def load_model(model_path):
    """Load a model written by :func:`save_model`."""
    path = Path(model_path)
    if not path.exists():
        raise DataError("Model file not found", str(path))
    with path.open("rb") as fh:
        model = pickle.load(fh)  # nosec B301
    if not isinstance(model, _MODEL_TYPES):
        raise DataError(f"File does not hold a trained model ({type(model).__name__})", str(path))
    return model
