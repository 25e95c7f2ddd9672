"""Extract labeled pixel samples from a raster under reference polygons.

A raster cell belongs to a polygon when the cell center lies inside the
polygon. A cell covered by both a training and a validation polygon stays a
training sample only. Pixels with a missing value in any band are dropped
here, so later stages never see them; how many were dropped, and which
polygons covered no cell at all, is reported on the :class:`ExtractionResult`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Hashable, List, Optional, Sequence, Tuple

import numpy as np
import shapely

from ..domain.exceptions import CrsMismatchError, DataError
from ..domain.models import PixelSamples, Polygon, Raster, Split
from ..logging import Reporter, ensure_reporter


@dataclass(frozen=True)
class ExtractionResult:
    samples: PixelSamples
    empty_polygons: Tuple[Hashable, ...] = ()
    dropped_missing: int = 0
    shared_cells: int = 0


def extract(
    raster: Raster,
    polygons: Sequence[Polygon],
    polygons_crs: Optional[str] = None,
    reporter: Reporter | None = None,
    same_crs: Optional[Callable[[str, str], bool]] = None,
) -> ExtractionResult:
    """Collect one sample per raster cell covered by each polygon.

    Parameters
    ----------
    raster : Raster
        Multi-band grid in the same coordinate system as the polygons
    polygons : sequence of Polygon
        Split-tagged reference polygons
    polygons_crs : str, optional
        Coordinate system of the polygons, compared to ``raster.crs`` when
        both are known
    reporter : Reporter, optional
        Receives diagnostics about empty polygons and dropped pixels
    same_crs : callable, optional
        Compares two coordinate system definitions; plain string equality
        when omitted

    Returns
    -------
    ExtractionResult
        Complete samples (no missing band values), ids of polygons covering
        no cell, the number of pixels dropped for missing values, and the
        number of validation pixels dropped because a training polygon
        covers the same cell

    Raises
    ------
    DataError
        Empty raster, CRS mismatch, malformed geometry or untagged polygon

    """
    report = ensure_reporter(reporter)
    if raster.is_empty:
        raise DataError("Input raster is empty")
    if polygons_crs and raster.crs and not (same_crs or _same_text)(raster.crs, polygons_crs):
        raise CrsMismatchError(raster.crs, polygons_crs)

    tables: List[PixelSamples] = []
    empty_polygons: List[Hashable] = []
    dropped = 0
    for polygon in polygons:
        _check_polygon(polygon)
        rows, cols = cells_in_polygon(raster, polygon.geometry)
        if rows.size == 0:
            empty_polygons.append(polygon.id)
            continue

        values = raster.data[:, rows, cols].T.astype(np.float64)
        missing = raster.missing_values(values)
        dropped += int(missing.sum())
        keep = ~missing
        n = int(keep.sum())
        if n == 0:
            continue
        tables.append(
            PixelSamples(
                raster.band_names,
                values[keep],
                np.full(n, polygon.class_id),
                polygon_ids=[polygon.id] * n,
                splits=[polygon.split] * n,
                rows=rows[keep],
                cols=cols[keep],
            ),
        )

    samples = PixelSamples.concatenate(raster.band_names, tables)
    samples, shared = _drop_shared_validation_cells(samples)
    if shared:
        report.warning(
            f"Warning: {shared} validation pixel(s) also lie in a training polygon and were kept for training only",
        )
    if empty_polygons:
        report.warning(
            f"Warning: {len(empty_polygons)} polygon(s) cover no raster cell and contribute no samples: "
            f"{empty_polygons}",
        )
    if dropped:
        report.info(f"Dropped {dropped} pixel(s) with missing band values")
    report.info(f"Extracted {len(samples)} pixel samples from {len(polygons)} polygons")
    return ExtractionResult(
        samples=samples, empty_polygons=tuple(empty_polygons), dropped_missing=dropped, shared_cells=shared,
    )


def _same_text(first: str, second: str) -> bool:
    return first.strip() == second.strip()


def _drop_shared_validation_cells(samples: PixelSamples) -> Tuple[PixelSamples, int]:
    """Remove validation rows whose cell is also a training sample."""
    splits = samples.splits
    is_training = np.array([s is Split.TRAINING for s in splits], dtype=bool)
    is_validation = np.array([s is Split.VALIDATION for s in splits], dtype=bool)
    if not (is_training.any() and is_validation.any()):
        return samples, 0
    training_cells = set(zip(samples.rows[is_training].tolist(), samples.cols[is_training].tolist()))
    shared = is_validation & np.array(
        [(r, c) in training_cells for r, c in zip(samples.rows.tolist(), samples.cols.tolist())], dtype=bool,
    )
    n_shared = int(shared.sum())
    if not n_shared:
        return samples, 0
    return samples.subset(~shared), n_shared


def cells_in_polygon(raster: Raster, geometry) -> Tuple[np.ndarray, np.ndarray]:
    """Row and column indices of the cells whose center lies in ``geometry``."""
    n_rows, n_cols = raster.shape
    row_range, col_range = _candidate_window(raster, geometry)
    if row_range[0] >= row_range[1] or col_range[0] >= col_range[1]:
        return np.empty(0, dtype=np.int64), np.empty(0, dtype=np.int64)

    rr, cc = np.meshgrid(
        np.arange(*row_range, dtype=np.int64),
        np.arange(*col_range, dtype=np.int64),
        indexing="ij",
    )
    rr, cc = rr.ravel(), cc.ravel()
    xs, ys = raster.cell_centers(rr, cc)
    inside = shapely.contains_xy(geometry, xs, ys)
    return rr[inside], cc[inside]


def _candidate_window(raster: Raster, geometry) -> Tuple[Tuple[int, int], Tuple[int, int]]:
    """Cell window covering the geometry's bounds, clipped to the grid."""
    n_rows, n_cols = raster.shape
    gt = raster.geotransform
    if gt[2] != 0.0 or gt[4] != 0.0:
        # Rotated grid: test every cell.
        return (0, n_rows), (0, n_cols)

    minx, miny, maxx, maxy = geometry.bounds
    c0, c1 = sorted(((minx - gt[0]) / gt[1], (maxx - gt[0]) / gt[1]))
    r0, r1 = sorted(((miny - gt[3]) / gt[5], (maxy - gt[3]) / gt[5]))
    col_range = (max(0, math.floor(c0)), min(n_cols, math.ceil(c1) + 1))
    row_range = (max(0, math.floor(r0)), min(n_rows, math.ceil(r1) + 1))
    return row_range, col_range


def _check_polygon(polygon: Polygon) -> None:
    geometry = polygon.geometry
    if geometry is None or not hasattr(geometry, "bounds"):
        raise DataError(f"Polygon {polygon.id!r} has no geometry")
    if geometry.is_empty:
        raise DataError(f"Polygon {polygon.id!r} has an empty geometry")
    if not geometry.is_valid:
        raise DataError(f"Polygon {polygon.id!r} has a malformed geometry: {shapely.is_valid_reason(geometry)}")
    if polygon.split is None:
        raise DataError(f"Polygon {polygon.id!r} has no split tag; split the polygon set first")
