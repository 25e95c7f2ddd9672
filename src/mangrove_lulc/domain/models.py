"""Core data structures shared by the pipeline stages.

Samples are held as an explicit columnar table (:class:`PixelSamples`)
rather than a free-form dataframe: rows are pixels, columns are the fixed
fields ``polygon_id``, ``class_id``, ``split``, ``row``, ``col`` and one
value per named band.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Hashable, Iterator, Optional, Sequence, Tuple

import numpy as np

from .exceptions import DataError


class Split(str, Enum):
    """Partition a reference polygon belongs to."""

    TRAINING = "training"
    VALIDATION = "validation"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Polygon:
    """Reference polygon (CRA) labeled with a land-cover class.

    Only the split tag changes over a polygon's life, through
    :meth:`with_split`, which shares the geometry object with the untagged polygon.
    """

    id: Hashable
    class_id: int
    geometry: Any = field(compare=False, repr=False)
    split: Optional[Split] = None

    def with_split(self, split: Split) -> "Polygon":
        return replace(self, split=Split(split))


@dataclass(frozen=True)
class PixelSample:
    polygon_id: Hashable
    class_id: int
    split: Optional[Split]
    values: Tuple[float, ...]
    row: int = -1
    col: int = -1


def _frozen(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


class PixelSamples:
    """Immutable table of per-pixel band values.

    Parameters
    ----------
    band_names : sequence of str
        Band names, in the column order of ``values``
    values : array-like, shape (n, n_bands)
        Band values of each pixel
    class_ids, polygon_ids, splits : array-like, shape (n,)
        Label, source polygon and split tag of each pixel
    rows, cols : array-like, shape (n,), optional
        Raster cell of each pixel (``-1`` when unknown)

    """

    def __init__(
        self,
        band_names: Sequence[str],
        values,
        class_ids,
        polygon_ids=None,
        splits=None,
        rows=None,
        cols=None,
    ):
        self.band_names: Tuple[str, ...] = tuple(band_names)
        values = np.array(values, dtype=np.float64, copy=True)
        if values.size == 0:
            values = values.reshape(0, len(self.band_names))
        if values.ndim != 2 or values.shape[1] != len(self.band_names):
            raise DataError(
                f"Sample values must have shape (n, {len(self.band_names)}), got {values.shape}",
            )
        n = values.shape[0]
        self.values = _frozen(values)
        self.class_ids = _frozen(np.array(class_ids, dtype=np.int64).reshape(n))
        if polygon_ids is None:
            polygon_ids = [None] * n
        if splits is None:
            splits = [None] * n
        self.polygon_ids = _frozen(_object_array(polygon_ids, n))
        self.splits = _frozen(_object_array([None if s is None else Split(s) for s in splits], n))
        self.rows = _frozen(np.full(n, -1, dtype=np.int64) if rows is None else np.array(rows, dtype=np.int64))
        self.cols = _frozen(np.full(n, -1, dtype=np.int64) if cols is None else np.array(cols, dtype=np.int64))

    @classmethod
    def empty(cls, band_names: Sequence[str]) -> "PixelSamples":
        return cls(band_names, np.empty((0, len(band_names))), [])

    @classmethod
    def concatenate(cls, band_names: Sequence[str], tables: Sequence["PixelSamples"]) -> "PixelSamples":
        tables = [t for t in tables if len(t)]
        if not tables:
            return cls.empty(band_names)
        return cls(
            band_names,
            np.vstack([t.values for t in tables]),
            np.concatenate([t.class_ids for t in tables]),
            polygon_ids=np.concatenate([t.polygon_ids for t in tables]),
            splits=np.concatenate([t.splits for t in tables]),
            rows=np.concatenate([t.rows for t in tables]),
            cols=np.concatenate([t.cols for t in tables]),
        )

    def __len__(self) -> int:
        return self.values.shape[0]

    def __iter__(self) -> Iterator[PixelSample]:
        for i in range(len(self)):
            yield self[i]

    def __getitem__(self, index: int) -> PixelSample:
        return PixelSample(
            polygon_id=self.polygon_ids[index],
            class_id=int(self.class_ids[index]),
            split=self.splits[index],
            values=tuple(float(v) for v in self.values[index]),
            row=int(self.rows[index]),
            col=int(self.cols[index]),
        )

    def __repr__(self) -> str:
        return f"PixelSamples(n={len(self)}, bands={list(self.band_names)})"

    def subset(self, mask_or_index) -> "PixelSamples":
        """Return a new table holding the selected rows."""
        return PixelSamples(
            self.band_names,
            self.values[mask_or_index],
            self.class_ids[mask_or_index],
            polygon_ids=self.polygon_ids[mask_or_index],
            splits=self.splits[mask_or_index],
            rows=self.rows[mask_or_index],
            cols=self.cols[mask_or_index],
        )

    def for_split(self, split: Split) -> "PixelSamples":
        split = Split(split)
        return self.subset(np.array([s == split for s in self.splits], dtype=bool))

    def for_class(self, class_id: int) -> "PixelSamples":
        return self.subset(self.class_ids == int(class_id))

    def classes(self) -> Tuple[int, ...]:
        """Class codes present in the table, ascending."""
        return tuple(int(c) for c in np.unique(self.class_ids))

    def class_counts(self) -> Dict[int, int]:
        labels, counts = np.unique(self.class_ids, return_counts=True)
        return {int(label): int(count) for label, count in zip(labels, counts)}

    def complete_mask(self) -> np.ndarray:
        """Rows with a defined value in every band."""
        return np.all(np.isfinite(self.values), axis=1)


def _object_array(items, n: int) -> np.ndarray:
    out = np.empty(n, dtype=object)
    for i, item in enumerate(items):
        out[i] = item
    return out


def missing_rows(values: np.ndarray, nodata: Optional[float] = None) -> np.ndarray:
    """Rows of a pixel-vector array with a NaN or ``nodata`` value in any band."""
    missing = ~np.isfinite(values)
    if nodata is not None and not math.isnan(nodata):
        missing |= values == nodata
    return missing.any(axis=1)


@dataclass(frozen=True, eq=False)
class Raster:
    """Multi-band georeferenced grid held in memory.

    ``data`` has shape ``(bands, rows, cols)``. A cell value is missing when
    it is NaN or equal to ``nodata``.
    """

    data: np.ndarray
    band_names: Tuple[str, ...]
    geotransform: Tuple[float, float, float, float, float, float] = (0.0, 1.0, 0.0, 0.0, 0.0, -1.0)
    crs: Optional[str] = None
    nodata: Optional[float] = None

    def __post_init__(self) -> None:
        data = np.asarray(self.data)
        if data.ndim == 2:
            data = data[np.newaxis, :, :]
        if data.ndim != 3:
            raise DataError(f"Raster data must be (bands, rows, cols), got shape {data.shape}")
        object.__setattr__(self, "data", data)
        object.__setattr__(self, "band_names", tuple(self.band_names))
        object.__setattr__(self, "geotransform", tuple(float(v) for v in self.geotransform))
        if len(self.band_names) != data.shape[0]:
            raise DataError(f"Raster has {data.shape[0]} bands but {len(self.band_names)} band names")

    @property
    def band_count(self) -> int:
        return self.data.shape[0]

    @property
    def shape(self) -> Tuple[int, int]:
        return self.data.shape[1], self.data.shape[2]

    @property
    def is_empty(self) -> bool:
        return self.data.size == 0

    def block(self, row_start: int, row_stop: int) -> np.ndarray:
        """Pixel vectors of a row block, shape ``(n_cells, bands)`` as float64."""
        block = self.data[:, row_start:row_stop, :].astype(np.float64)
        return block.reshape(self.band_count, -1).T

    def missing_values(self, values: np.ndarray) -> np.ndarray:
        """Boolean mask of rows in ``values`` holding any missing band."""
        return missing_rows(values, self.nodata)

    def missing_mask(self) -> np.ndarray:
        rows, cols = self.shape
        return self.missing_values(self.block(0, rows)).reshape(rows, cols)

    def cell_centers(self, rows: np.ndarray, cols: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Map coordinates of the centers of the given cells."""
        gt = self.geotransform
        px = cols + 0.5
        py = rows + 0.5
        return gt[0] + px * gt[1] + py * gt[2], gt[3] + px * gt[4] + py * gt[5]


@dataclass(frozen=True, eq=False)
class ClassifiedRaster:
    """Class-code grid congruent with the raster it was predicted from."""

    data: np.ndarray
    geotransform: Tuple[float, ...]
    crs: Optional[str]
    nodata: int
    classes: Tuple[int, ...] = ()

    @property
    def shape(self) -> Tuple[int, int]:
        return self.data.shape

    def class_counts(self) -> Dict[int, int]:
        """Number of cells per class, excluding no-data cells."""
        valid = self.data[self.data != self.nodata]
        labels, counts = np.unique(valid, return_counts=True)
        return {int(label): int(count) for label, count in zip(labels, counts)}
