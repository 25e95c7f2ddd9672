"""Train classifier models and apply them to samples and rasters.

Training draws, for every class, a seeded random subsample of at most
``sample_size_per_class`` training pixels. Classes with fewer pixels use all
of them; the counts actually used are stored on the model
(``training_counts`` next to ``available_counts``) and clamping is logged.
"""

from __future__ import annotations

from typing import Dict, Iterator, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .. import constants
from ..classifier_config import ModelKind, parse_model_kind
from ..config import check_seed
from ..domain.exceptions import ConfigurationError, DataError, InsufficientSamplesError
from ..domain.models import ClassifiedRaster, PixelSamples, Raster, Split
from ..logging import Reporter, ensure_reporter
from .forest import RandomForestModel
from .gaussian import GaussianMaximumLikelihood

ClassifierModel = Union[GaussianMaximumLikelihood, RandomForestModel]


def subsample_generator(seed: int, class_id: int) -> np.random.Generator:
    """Generator for one class's training subsample, independent of other classes."""
    # Offset keeps this stream distinct from the polygon-split stream of the same class.
    return np.random.default_rng([int(seed), int(class_id), 1])


def draw_training_subsample(
    samples: PixelSamples,
    sample_size_per_class: int,
    seed: int,
    classes: Optional[Sequence[int]] = None,
) -> Tuple[np.ndarray, Dict[int, int], Dict[int, int]]:
    """Select row indices of the per-class training subsample.

    Returns:
        (indices, used_counts, available_counts); indices are sorted so the
        subsample keeps the table order.

    Raises:
        InsufficientSamplesError: If a required class has no pixels.
        DataError: If a class code is negative.
        ConfigurationError: If ``seed`` is negative.
    """
    if sample_size_per_class <= 0:
        raise ConfigurationError(
            f"sample_size_per_class must be positive, got {sample_size_per_class}", "sample_size_per_class",
        )
    check_seed(seed)
    available = samples.class_counts()
    required = sorted(set(available) | {int(c) for c in classes}) if classes is not None else sorted(available)
    negative = [c for c in required if c < 0]
    if negative:
        raise DataError(f"Class codes must be non-negative, got {negative}")

    empty = [c for c in required if available.get(c, 0) == 0]
    if empty:
        raise InsufficientSamplesError(empty[0], 0, {c: available.get(c, 0) for c in required})

    chosen = []
    used: Dict[int, int] = {}
    for class_id in required:
        rows = np.flatnonzero(samples.class_ids == class_id)
        k = min(sample_size_per_class, rows.size)
        picked = subsample_generator(seed, class_id).choice(rows, size=k, replace=False)
        chosen.append(np.sort(picked))
        used[class_id] = int(k)
    indices = np.sort(np.concatenate(chosen)) if chosen else np.empty(0, dtype=np.int64)
    return indices, used, {c: available.get(c, 0) for c in required}


def train(
    samples: PixelSamples,
    model_kind: Union[ModelKind, str] = ModelKind.MAXIMUM_LIKELIHOOD,
    sample_size_per_class: int = constants.DEFAULT_SAMPLE_SIZE_PER_CLASS,
    seed: int = constants.DEFAULT_SEED,
    classes: Optional[Sequence[int]] = None,
    tree_count: int = constants.DEFAULT_TREE_COUNT,
    regularization: float = constants.DEFAULT_REGULARIZATION,
    priors: Optional[Mapping[int, float]] = None,
    n_jobs: Optional[int] = None,
    reporter: Reporter | None = None,
) -> ClassifierModel:
    """Train a classifier on the training pixels of ``samples``.

    Parameters
    ----------
    samples : PixelSamples
        Pixel table; when split tags are present only training rows are used
    model_kind : ModelKind or str
        ``maximum-likelihood`` or ``random-forest``
    sample_size_per_class : int, default=500
        Upper bound of training pixels drawn per class
    seed : int, default=1234
        Seed for the per-class subsample and the tree bootstrap
    classes : sequence of int, optional
        Classes the model must cover. A listed class with no training pixel
        raises :class:`InsufficientSamplesError`.
    tree_count : int, default=100
        Number of trees (random forest only)
    regularization : float, default=0.0
        Ridge added to class covariances (maximum likelihood only)
    priors : mapping, optional
        Class prior probabilities (maximum likelihood only); uniform if None
    n_jobs : int, optional
        Worker threads for the random forest
    reporter : Reporter, optional
        Receives diagnostics

    Returns
    -------
    GaussianMaximumLikelihood or RandomForestModel

    Raises
    ------
    InsufficientSamplesError
        A required class has no training pixel
    DegenerateCovarianceError
        A class covariance is undefined or singular (maximum likelihood)

    """
    report = ensure_reporter(reporter)
    kind = parse_model_kind(model_kind)

    training = _training_rows(samples)
    missing = ~training.complete_mask()
    if missing.any():
        report.info(f"Ignoring {int(missing.sum())} training pixel(s) with missing band values")
        training = training.subset(~missing)

    indices, used, available = draw_training_subsample(training, sample_size_per_class, seed, classes)
    clamped = {c: (used[c], available[c]) for c in used if available[c] < sample_size_per_class}
    if clamped:
        details = ", ".join(f"class {c}: {n}/{sample_size_per_class}" for c, (n, _) in sorted(clamped.items()))
        report.warning(f"Warning: fewer than {sample_size_per_class} training pixels available; using all of them ({details})")

    x = training.values[indices]
    y = training.class_ids[indices]
    report.info(f"Training {kind} model on {x.shape[0]} pixels, {len(used)} classes, {x.shape[1]} bands")

    if kind is ModelKind.MAXIMUM_LIKELIHOOD:
        model = GaussianMaximumLikelihood(training.band_names, tau=regularization)
        model.learn(x, y, priors=priors)
    else:
        model = RandomForestModel(training.band_names, tree_count=tree_count, seed=seed, n_jobs=n_jobs)
        model.learn(x, y)
    model.training_counts = used
    model.available_counts = available
    return model


def _training_rows(samples: PixelSamples) -> PixelSamples:
    if any(s is not None for s in samples.splits):
        return samples.for_split(Split.TRAINING)
    return samples


def predict(model: ClassifierModel, samples: PixelSamples, nodata: int = constants.NODATA_CLASS) -> np.ndarray:
    """Predicted class code of every sample (``nodata`` for incomplete rows)."""
    check_bands(model, samples.band_names)
    return classify_block(model, samples.values, ~samples.complete_mask(), nodata)


def classify_block(model: ClassifierModel, values: np.ndarray, missing: np.ndarray, nodata: int) -> np.ndarray:
    """Classify pixel vectors, writing ``nodata`` where ``missing`` is set."""
    out = np.full(values.shape[0], nodata, dtype=np.int32)
    valid = np.flatnonzero(~missing)
    if valid.size:
        out[valid] = model.predict(values[valid])
    return out


def iter_row_blocks(n_rows: int, block_rows: int) -> Iterator[Tuple[int, int]]:
    """Yield ``(row_start, row_stop)`` of consecutive row blocks."""
    if block_rows <= 0:
        raise ConfigurationError(f"block_rows must be positive, got {block_rows}", "block_rows")
    for start in range(0, n_rows, block_rows):
        yield start, min(start + block_rows, n_rows)


def predict_raster(
    model: ClassifierModel,
    raster: Raster,
    block_rows: int = constants.DEFAULT_BLOCK_ROWS,
    nodata: int = constants.NODATA_CLASS,
    reporter: Reporter | None = None,
) -> ClassifiedRaster:
    """Classify every raster cell, one row block at a time.

    Cells with a missing value in any band receive ``nodata``. The output
    keeps the raster's geotransform and coordinate system.
    """
    report = ensure_reporter(reporter)
    if raster.is_empty:
        raise DataError("Input raster is empty")
    check_bands(model, raster.band_names)
    check_nodata(model, nodata)

    n_rows, n_cols = raster.shape
    out = np.full((n_rows, n_cols), nodata, dtype=np.int32)
    for start, stop in iter_row_blocks(n_rows, block_rows):
        values = raster.block(start, stop)
        out[start:stop, :] = classify_block(model, values, raster.missing_values(values), nodata).reshape(
            stop - start, n_cols,
        )
        report.progress(100.0 * stop / n_rows)

    report.info(f"Classified {n_rows}x{n_cols} raster ({int((out == nodata).sum())} no-data cells)")
    return ClassifiedRaster(
        data=out,
        geotransform=raster.geotransform,
        crs=raster.crs,
        nodata=nodata,
        classes=tuple(int(c) for c in model.classes_),
    )


def check_nodata(model: ClassifierModel, nodata: int) -> None:
    if int(nodata) in {int(c) for c in model.classes_}:
        raise ConfigurationError(f"nodata value {nodata} collides with a class code of the model", "nodata")


def check_bands(model: ClassifierModel, band_names: Sequence[str]) -> None:
    if model.band_names and tuple(band_names) != tuple(model.band_names):
        raise DataError(
            f"Band layout {list(band_names)} does not match the model's bands {list(model.band_names)}",
        )
