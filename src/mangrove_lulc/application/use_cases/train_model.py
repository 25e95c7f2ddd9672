"""Train-and-map use case: run the whole pipeline from files on disk."""

from __future__ import annotations

from typing import Optional

from ...accuracy import write_confusion_matrix
from ...config import ClassificationConfig
from ...infrastructure.geo.raster_io import read_raster, write_classified_raster
from ...infrastructure.geo.vector_io import crs_matches, read_polygons
from ...logging import FeedbackProtocol, Reporter
from ...ml.persistence import save_model
from ...signatures import signature_table, write_signature_table
from ..pipeline import PipelineResult, run_pipeline


def run_training(
    *,
    raster_path,
    vector_path,
    output_path,
    matrix_path=None,
    model_path=None,
    signatures_path=None,
    config: Optional[ClassificationConfig] = None,
    feedback: FeedbackProtocol | None = None,
) -> PipelineResult:
    """Classify ``raster_path`` from the reference polygons in ``vector_path``.

    Writes the classification map to ``output_path`` and, when given, the
    confusion matrix CSV, the pickled model and the spectral signature CSV.
    """
    config = config or ClassificationConfig()
    reporter = Reporter.from_feedback(feedback)

    reporter.step(f"Reading raster {raster_path}")
    raster = read_raster(raster_path, band_names=config.band_names)
    reporter.step(f"Reading polygons {vector_path}")
    polygons, polygons_crs = read_polygons(vector_path, class_field=config.class_field, id_field=config.id_field)

    result = run_pipeline(
        raster,
        polygons,
        config,
        polygons_crs=polygons_crs,
        reporter=reporter,
        same_crs=crs_matches,
    )

    write_classified_raster(result.classified, output_path)
    reporter.info(f"Classification map written to {output_path}")
    if matrix_path:
        write_confusion_matrix(result.report, matrix_path)
        reporter.info(f"Confusion matrix written to {matrix_path}")
    if model_path:
        save_model(result.model, model_path)
        reporter.info(f"Model saved to {model_path}")
    if signatures_path:
        write_signature_table(signature_table(result.signatures, config.wavelengths), signatures_path)
        reporter.info(f"Spectral signatures written to {signatures_path}")
    return result
