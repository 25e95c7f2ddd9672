"""Supervised land-cover classification of multi-band imagery.

Reference polygons are split into training and validation sets, pixel
samples are extracted under them, a Gaussian maximum-likelihood or random
forest classifier is trained, the raster is classified, and the result is
assessed against the validation pixels.
"""

from __future__ import annotations

__version__ = "1.0.0"

from .accuracy import AccuracyReport, ConfusionMatrix, evaluate
from .classifier_config import ModelKind
from .config import ClassificationConfig, load_config
from .domain.exceptions import NOT_AVAILABLE
from .domain.land_cover import LandCoverClass
from .domain.models import ClassifiedRaster, PixelSample, PixelSamples, Polygon, Raster, Split
from .extraction.pixels import extract
from .ml import predict, predict_raster, train
from .sampling.polygon_split import split
from .signatures import summarize

__all__ = [
    "NOT_AVAILABLE",
    "AccuracyReport",
    "ClassificationConfig",
    "ClassifiedRaster",
    "ConfusionMatrix",
    "LandCoverClass",
    "ModelKind",
    "PixelSample",
    "PixelSamples",
    "Polygon",
    "Raster",
    "Split",
    "evaluate",
    "extract",
    "load_config",
    "predict",
    "predict_raster",
    "split",
    "summarize",
    "train",
]
