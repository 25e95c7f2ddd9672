"""Land-cover class nomenclature used by the reference polygons."""

from __future__ import annotations

from enum import IntEnum


class LandCoverClass(IntEnum):
    """Enumerated land-cover classes, keyed by the integer ``classId`` code."""

    TERRESTRIAL_FOREST = 1
    MIXED_VEGETATION_DRY = 2
    BARREN_EXPOSED = 3
    RESIDUAL_WATER = 4
    CLOSED_CANOPY_MANGROVE = 5
    OPEN_CANOPY_MANGROVE_I = 6
    OPEN_CANOPY_MANGROVE_II = 7
    MIXED_VEGETATION_HEALTHY = 8
    MIXED_VEGETATION_WET_URBAN = 9

    @property
    def label(self) -> str:
        return CLASS_LABELS[self]


CLASS_LABELS = {
    LandCoverClass.TERRESTRIAL_FOREST: "Terrestrial Forest",
    LandCoverClass.MIXED_VEGETATION_DRY: "Mixed Vegetation - Dry",
    LandCoverClass.BARREN_EXPOSED: "Barren/Exposed",
    LandCoverClass.RESIDUAL_WATER: "Residual Water",
    LandCoverClass.CLOSED_CANOPY_MANGROVE: "Closed-Canopy Mangrove",
    LandCoverClass.OPEN_CANOPY_MANGROVE_I: "Open-Canopy Mangrove I",
    LandCoverClass.OPEN_CANOPY_MANGROVE_II: "Open-Canopy Mangrove II",
    LandCoverClass.MIXED_VEGETATION_HEALTHY: "Mixed Vegetation - Healthy",
    LandCoverClass.MIXED_VEGETATION_WET_URBAN: "Mixed Vegetation - Wet/Urban",
}

DEFAULT_CLASS_CODES = tuple(int(c) for c in LandCoverClass)


def class_name(code: int) -> str:
    """Return the display name of a class code, or ``"Class <code>"``."""
    try:
        return LandCoverClass(int(code)).label
    except ValueError:
        return f"Class {code}"
