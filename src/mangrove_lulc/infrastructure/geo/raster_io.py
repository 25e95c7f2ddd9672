"""!@brief Read multi-band rasters and write classification maps with GDAL."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Sequence

import numpy as np

from ... import constants
from ...domain.exceptions import DataError
from ...domain.models import ClassifiedRaster, Raster, missing_rows
from ...logging import Reporter, ensure_reporter
from ...ml.classifier import ClassifierModel, check_bands, check_nodata, classify_block, iter_row_blocks
from ._gdal import require_gdal


def _open(raster_path):
    gdal, _, _ = require_gdal()
    path = str(raster_path)
    if not Path(path).exists():
        raise DataError("Raster file not found", path)
    try:
        dataset = gdal.Open(path, gdal.GA_ReadOnly)
    except RuntimeError as exc:
        raise DataError(f"Impossible to open raster: {exc}", path) from exc
    if dataset is None:
        raise DataError("Impossible to open raster", path)
    return dataset


def _band_names(dataset, band_names: Optional[Sequence[str]], path: str):
    if band_names is None:
        names = []
        for i in range(dataset.RasterCount):
            description = dataset.GetRasterBand(i + 1).GetDescription()
            names.append(description or f"B{i + 1}")
        return tuple(names)
    if len(band_names) != dataset.RasterCount:
        raise DataError(
            f"Raster has {dataset.RasterCount} bands but {len(band_names)} band names were given", path,
        )
    return tuple(band_names)


def _nodata(dataset) -> Optional[float]:
    # First band's nodata value is used for all bands.
    value = dataset.GetRasterBand(1).GetNoDataValue() if dataset.RasterCount else None
    return None if value is None else float(value)


def read_raster(raster_path, band_names: Optional[Sequence[str]] = None) -> Raster:
    """Load a whole raster into memory.

    Input:
        raster_path: the name of the file
        band_names: names of the bands in file order; band descriptions
            (or B1..Bn) when omitted
    Output:
        Raster with data shaped (bands, rows, cols)
    """
    path = str(raster_path)
    dataset = _open(path)
    names = _band_names(dataset, band_names, path)
    nc = dataset.RasterXSize
    nl = dataset.RasterYSize
    d = dataset.RasterCount
    if d == 0 or nc == 0 or nl == 0:
        raise DataError("Input raster is empty", path)

    im = np.empty((d, nl, nc), dtype=np.float64)
    for i in range(d):
        im[i, :, :] = dataset.GetRasterBand(i + 1).ReadAsArray()

    raster = Raster(
        data=im,
        band_names=names,
        geotransform=dataset.GetGeoTransform(),
        crs=dataset.GetProjection() or None,
        nodata=_nodata(dataset),
    )
    dataset = None
    return raster


def _create_output(output_path, n_cols: int, n_rows: int, geotransform, projection, nodata: int):
    gdal, _, _ = require_gdal()
    path = Path(output_path)
    if path.parent and not path.parent.exists():
        os.makedirs(path.parent, exist_ok=True)
    driver = gdal.GetDriverByName("GTiff")
    dst_ds = driver.Create(str(path), n_cols, n_rows, 1, gdal.GDT_Int32)
    if dst_ds is None:
        raise DataError("Unable to create output raster", str(path))
    dst_ds.SetGeoTransform(tuple(geotransform))
    if projection:
        dst_ds.SetProjection(projection)
    out = dst_ds.GetRasterBand(1)
    out.SetNoDataValue(int(nodata))
    return dst_ds, out


def write_classified_raster(classified: ClassifiedRaster, output_path) -> str:
    """Write a classification map as a single-band Int32 GeoTIFF."""
    n_rows, n_cols = classified.shape
    dst_ds, out = _create_output(output_path, n_cols, n_rows, classified.geotransform, classified.crs, classified.nodata)
    out.WriteArray(np.asarray(classified.data, dtype=np.int32))
    out.FlushCache()
    dst_ds = None
    return str(output_path)


def classify_raster_file(
    model: ClassifierModel,
    raster_path,
    output_path,
    block_rows: int = constants.DEFAULT_BLOCK_ROWS,
    nodata: int = constants.NODATA_CLASS,
    band_names: Optional[Sequence[str]] = None,
    reporter: Reporter | None = None,
) -> str:
    """Classify a raster file block by block without loading it whole.

    Each row block is read from every band, classified, and written to the
    output before the next block is read. ``band_names`` defaults to the
    model's band names.
    """
    report = ensure_reporter(reporter)
    path = str(raster_path)
    dataset = _open(path)
    names = _band_names(dataset, band_names if band_names is not None else model.band_names or None, path)
    check_bands(model, names)
    check_nodata(model, nodata)

    nc = dataset.RasterXSize
    nl = dataset.RasterYSize
    d = dataset.RasterCount
    if d == 0 or nc == 0 or nl == 0:
        raise DataError("Input raster is empty", path)
    nodata_in = _nodata(dataset)

    dst_ds, out = _create_output(output_path, nc, nl, dataset.GetGeoTransform(), dataset.GetProjection(), nodata)
    for start, stop in iter_row_blocks(nl, block_rows):
        lines = stop - start
        x = np.empty((lines * nc, d), dtype=np.float64)
        for ind in range(d):
            x[:, ind] = dataset.GetRasterBand(ind + 1).ReadAsArray(0, start, nc, lines).reshape(lines * nc)
        yp = classify_block(model, x, missing_rows(x, nodata_in), nodata)
        out.WriteArray(yp.reshape(lines, nc), 0, start)
        report.progress(100.0 * stop / nl)
    out.FlushCache()
    report.info(f"Classified {nl}x{nc} raster {path} into {output_path}")

    dataset = None
    dst_ds = None
    return str(output_path)
