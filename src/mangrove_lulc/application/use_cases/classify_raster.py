"""Apply a saved model to a raster file."""

from __future__ import annotations

from ... import constants
from ...infrastructure.geo.raster_io import classify_raster_file
from ...logging import FeedbackProtocol, Reporter
from ...ml.persistence import load_model


def run_classification(
    *,
    raster_path,
    model_path,
    output_path,
    block_rows: int = constants.DEFAULT_BLOCK_ROWS,
    nodata: int = constants.NODATA_CLASS,
    feedback: FeedbackProtocol | None = None,
) -> str:
    """Classify ``raster_path`` with the model pickled at ``model_path``."""
    reporter = Reporter.from_feedback(feedback)
    reporter.step(f"Loading model {model_path}")
    model = load_model(model_path)
    reporter.step(f"Classifying {raster_path}")
    return classify_raster_file(
        model,
        raster_path,
        output_path,
        block_rows=block_rows,
        nodata=nodata,
        reporter=reporter,
    )
