"""GDAL/OGR file adapters."""
