"""Lazy access to the GDAL bindings (optional ``io`` extra)."""

from __future__ import annotations

from ...domain.exceptions import DependencyError


def require_gdal():
    """Return the ``(gdal, ogr, osr)`` modules or raise :class:`DependencyError`."""
    try:
        from osgeo import gdal, ogr, osr
    except ImportError as exc:
        raise DependencyError(
            "GDAL",
            "reading or writing geodata files needs the GDAL Python bindings "
            "(pip install 'mangrove-lulc[io]')",
        ) from exc
    gdal.UseExceptions()
    ogr.UseExceptions()
    osr.UseExceptions()
    return gdal, ogr, osr
