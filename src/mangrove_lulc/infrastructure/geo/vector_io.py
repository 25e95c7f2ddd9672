"""Read reference polygons from vector files with OGR."""

from __future__ import annotations

from pathlib import Path
from typing import Hashable, List, Optional, Set, Tuple

import shapely
from shapely import wkb

from ... import constants
from ...domain.exceptions import DataError
from ...domain.models import Polygon
from ._gdal import require_gdal


def read_polygons(
    vector_path,
    class_field: str = constants.DEFAULT_CLASS_FIELD,
    id_field: Optional[str] = constants.DEFAULT_ID_FIELD,
) -> Tuple[List[Polygon], Optional[str]]:
    """Load labeled polygons and the layer's coordinate system (WKT).

    Features without a class value are skipped. When ``id_field`` is absent
    from the layer the OGR feature id is used instead.

    Raises:
        DataError: If the file cannot be opened, has no layer, lacks the class
            field, holds a non-polygon geometry or repeats an id.
    """
    _, ogr, _ = require_gdal()
    path = str(vector_path)
    if not Path(path).exists():
        raise DataError("Vector file not found", path)
    try:
        ds = ogr.Open(path)
    except RuntimeError as exc:
        raise DataError(f"Unable to open vector dataset: {exc}", path) from exc
    if ds is None:
        raise DataError("Unable to open vector dataset", path)

    lyr = ds.GetLayer()
    if lyr is None:
        raise DataError("No layer found in vector dataset", path)

    defn = lyr.GetLayerDefn()
    field_names = [defn.GetFieldDefn(i).GetName() for i in range(defn.GetFieldCount())]
    if class_field not in field_names:
        raise DataError(f"Class field '{class_field}' not found (fields: {field_names})", path)
    use_id_field = id_field is not None and id_field in field_names

    srs = lyr.GetSpatialRef()
    crs = srs.ExportToWkt() if srs is not None else None

    polygons: List[Polygon] = []
    seen: Set[Hashable] = set()
    for feat in lyr:
        label = feat.GetField(class_field)
        if label in (None, ""):
            continue
        polygon_id = feat.GetField(id_field) if use_id_field else feat.GetFID()
        if polygon_id in seen:
            raise DataError(f"Duplicate polygon id {polygon_id!r}", path)
        seen.add(polygon_id)

        geom = feat.GetGeometryRef()
        if geom is None:
            raise DataError(f"Polygon {polygon_id!r} has no geometry", path)
        geometry = wkb.loads(bytes(geom.ExportToWkb()))
        if not isinstance(geometry, (shapely.Polygon, shapely.MultiPolygon)):
            raise DataError(f"Feature {polygon_id!r} is a {geometry.geom_type}, not a polygon", path)
        try:
            class_id = int(label)
        except (TypeError, ValueError) as exc:
            raise DataError(f"Polygon {polygon_id!r} has non-integer class {label!r}", path) from exc
        polygons.append(Polygon(id=polygon_id, class_id=class_id, geometry=geometry))

    ds = None
    if not polygons:
        raise DataError("No labeled polygon found", path)
    return polygons, crs


def crs_matches(first: Optional[str], second: Optional[str]) -> bool:
    """True when both definitions describe the same coordinate system.

    An unknown (empty) definition on either side matches anything.
    """
    if not first or not second:
        return True
    _, _, osr = require_gdal()
    a = osr.SpatialReference()
    b = osr.SpatialReference()
    try:
        a.SetFromUserInput(first)
        b.SetFromUserInput(second)
    except RuntimeError as exc:
        raise DataError(f"Unreadable coordinate system definition: {exc}") from exc
    return bool(a.IsSame(b))
