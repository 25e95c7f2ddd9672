"""Shared fixtures: synthetic rasters and reference polygons.

Rasters use the default north-up geotransform ``(0, 1, 0, 0, 0, -1)``, so
cell ``(row, col)`` spans ``x in [col, col + 1]`` and ``y in [-(row + 1), -row]``.
"""

from __future__ import annotations

import numpy as np
import pytest
import shapely

from mangrove_lulc.domain.models import Polygon, Raster


def cell_box(row0: int, col0: int, row1: int, col1: int):
    """Rectangle covering the cells of rows ``row0..row1-1`` and cols ``col0..col1-1``."""
    return shapely.box(col0, -row1, col1, -row0)


@pytest.fixture
def make_box():
    return cell_box


@pytest.fixture
def two_cluster_raster():
    """12 x 16 two-band raster: left half near (10, 10), right half near (50, 50)."""
    rng = np.random.default_rng(7)
    rows, cols = 12, 16
    base = np.where(np.arange(cols) < 8, 10.0, 50.0)
    data = np.empty((2, rows, cols))
    for band in range(2):
        data[band] = base[np.newaxis, :] + rng.normal(0.0, 1.0, size=(rows, cols))
    return Raster(data=data, band_names=("b1", "b2"), crs="EPSG:32651")


@pytest.fixture
def two_cluster_polygons():
    """Four 2 x 2-cell polygons per class; class 1 on the left, class 2 on the right."""
    polygons = []
    for i, row in enumerate((0, 3, 6, 9)):
        polygons.append(Polygon(id=i + 1, class_id=1, geometry=cell_box(row, 0, row + 2, 2)))
        polygons.append(Polygon(id=i + 5, class_id=2, geometry=cell_box(row, 12, row + 2, 14)))
    return polygons
