"""Train/validation split of reference polygons."""

from .polygon_split import PolygonSplit, split

__all__ = ["PolygonSplit", "split"]
