"""Classifier models, training and prediction."""

from .classifier import ClassifierModel, predict, predict_raster, train
from .forest import RandomForestModel
from .gaussian import GaussianMaximumLikelihood
from .persistence import load_model, save_model

__all__ = [
    "ClassifierModel",
    "GaussianMaximumLikelihood",
    "RandomForestModel",
    "load_model",
    "predict",
    "predict_raster",
    "save_model",
    "train",
]
