"""End-to-end classification run on in-memory inputs.

Stages run in a fixed order, each consuming the previous stage's output::

    polygons -> split -> extract -> summarize -> train -> predict_raster
                                                      -> validation predictions -> evaluate
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence, Tuple

import numpy as np

from ..accuracy import AccuracyReport, evaluate, format_metric
from ..config import ClassificationConfig
from ..domain.exceptions import DataError
from ..domain.models import ClassifiedRaster, PixelSamples, Polygon, Raster, Split
from ..extraction.pixels import ExtractionResult, extract
from ..logging import Reporter, ensure_reporter
from ..ml.classifier import ClassifierModel, predict, predict_raster, train
from ..sampling.polygon_split import PolygonSplit, split
from ..signatures import SpectralClassStats, summarize


@dataclass(frozen=True)
class PipelineResult:
    split: PolygonSplit
    extraction: ExtractionResult
    signatures: Dict[Tuple[int, str], SpectralClassStats]
    model: ClassifierModel
    classified: ClassifiedRaster
    validation_samples: PixelSamples
    validation_predictions: np.ndarray
    report: AccuracyReport

    @property
    def samples(self) -> PixelSamples:
        return self.extraction.samples


def check_class_codes(polygons: Sequence[Polygon], class_codes: Sequence[int]) -> Tuple[int, ...]:
    """Sorted class codes used by ``polygons``; all must be known codes."""
    used = sorted({int(p.class_id) for p in polygons})
    unknown = [c for c in used if c not in set(class_codes)]
    if unknown:
        raise DataError(f"Polygons use unknown class code(s) {unknown}; known codes are {list(class_codes)}")
    return tuple(used)


def run_pipeline(
    raster: Raster,
    polygons: Sequence[Polygon],
    config: Optional[ClassificationConfig] = None,
    polygons_crs: Optional[str] = None,
    reporter: Reporter | None = None,
    same_crs: Optional[Callable[[str, str], bool]] = None,
) -> PipelineResult:
    """Split, extract, summarize, train, classify and assess in one call.

    Every class present in ``polygons`` must end up with training pixels,
    otherwise :class:`InsufficientSamplesError` is raised by the training
    stage.
    """
    config = config or ClassificationConfig()
    report = ensure_reporter(reporter)
    if not polygons:
        raise DataError("Polygon set is empty")
    classes = check_class_codes(polygons, config.class_codes)

    report.step("Splitting reference polygons")
    partition = split(polygons, train_fraction=config.train_fraction, seed=config.seed, reporter=report)
    report.progress(10)

    report.step("Extracting pixel samples")
    extraction = extract(raster, partition.polygons, polygons_crs=polygons_crs, reporter=report, same_crs=same_crs)
    samples = extraction.samples
    report.progress(25)

    report.step("Computing spectral signatures")
    signatures = summarize(samples, classes=classes)

    report.step(f"Training {config.model_kind} classifier")
    model = train(
        samples.for_split(Split.TRAINING),
        config.model_kind,
        sample_size_per_class=config.sample_size_per_class,
        seed=config.seed,
        classes=classes,
        tree_count=config.tree_count,
        regularization=config.regularization,
        priors=config.priors,
        n_jobs=config.n_jobs,
        reporter=report,
    )
    report.progress(50)

    report.step("Classifying raster")
    classified = predict_raster(model, raster, block_rows=config.block_rows, nodata=config.nodata)
    report.progress(90)

    report.step("Assessing accuracy on validation pixels")
    validation = samples.for_split(Split.VALIDATION)
    predictions = predict(model, validation, nodata=config.nodata)
    accuracy = evaluate(predictions, validation.class_ids, classes=classes, nodata=config.nodata)
    report.info(
        f"Validation: {accuracy.matrix.total()} pixels, overall accuracy {format_metric(accuracy.overall_accuracy)}, "
        f"kappa {format_metric(accuracy.kappa)}",
    )
    report.progress(100)

    return PipelineResult(
        split=partition,
        extraction=extraction,
        signatures=signatures,
        model=model,
        classified=classified,
        validation_samples=validation,
        validation_predictions=predictions,
        report=accuracy,
    )
