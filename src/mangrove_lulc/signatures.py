"""Per-class spectral signatures.

For each (class, band) slice of a sample table the summarizer reports the
mean, the 5th and 95th percentiles, the maximum and the standard deviation.

- Standard deviation is the *sample* standard deviation (``ddof=1``), so it
  is undefined for slices holding fewer than two pixels.
- Percentiles use linear interpolation between order statistics of the
  empirical distribution (``numpy.percentile`` default).
- A slice with no pixels reports every statistic as ``None``.
"""

from __future__ import annotations

import csv
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .domain.land_cover import class_name
from .domain.models import PixelSamples


@dataclass(frozen=True)
class SpectralClassStats:
    class_id: int
    band: str
    count: int
    mean: Optional[float]
    p5: Optional[float]
    p95: Optional[float]
    max: Optional[float]
    std: Optional[float]


def summarize_values(class_id: int, band: str, values: np.ndarray) -> SpectralClassStats:
    """Statistics of one (class, band) slice, ignoring non-finite values."""
    values = np.asarray(values, dtype=np.float64)
    values = values[np.isfinite(values)]
    n = int(values.size)
    if n == 0:
        return SpectralClassStats(class_id, band, 0, None, None, None, None, None)
    p5, p95 = np.percentile(values, [5, 95])
    return SpectralClassStats(
        class_id=class_id,
        band=band,
        count=n,
        mean=float(np.mean(values)),
        p5=float(p5),
        p95=float(p95),
        max=float(np.max(values)),
        std=float(np.std(values, ddof=1)) if n > 1 else None,
    )


def summarize(
    samples: PixelSamples,
    classes: Optional[Sequence[int]] = None,
) -> Dict[Tuple[int, str], SpectralClassStats]:
    """Spectral signature of every class present in ``samples``.

    ``classes`` adds entries (all statistics ``None``) for classes that have
    no surviving samples, so a class lost to missing-value filtering stays
    visible in the output.
    """
    labels = set(samples.classes())
    if classes is not None:
        labels.update(int(c) for c in classes)

    result: Dict[Tuple[int, str], SpectralClassStats] = {}
    for class_id in sorted(labels):
        in_class = samples.class_ids == class_id
        for band_index, band in enumerate(samples.band_names):
            result[(class_id, band)] = summarize_values(class_id, band, samples.values[in_class, band_index])
    return result


def signature_table(
    stats: Mapping[Tuple[int, str], SpectralClassStats],
    wavelengths: Optional[Mapping[str, float]] = None,
) -> List[dict]:
    """Flatten signatures into rows, ordered by class then wavelength.

    Bands without a known wavelength keep their relative order after the
    ones that have one.
    """
    wavelengths = wavelengths or {}
    band_order = {band: i for i, (_, band) in enumerate(stats)}

    def sort_key(key):
        class_id, band = key
        wl = wavelengths.get(band)
        return (class_id, wl is None, wl if wl is not None else 0.0, band_order[band])

    rows = []
    for key in sorted(stats, key=sort_key):
        s = stats[key]
        rows.append(
            {
                "class_id": s.class_id,
                "class_name": class_name(s.class_id),
                "band": s.band,
                "wavelength": wavelengths.get(s.band),
                "count": s.count,
                "mean": s.mean,
                "p5": s.p5,
                "p95": s.p95,
                "max": s.max,
                "std": s.std,
            },
        )
    return rows


SIGNATURE_COLUMNS = ("class_id", "class_name", "band", "wavelength", "count", "mean", "p5", "p95", "max", "std")


def write_signature_table(rows: Sequence[Mapping], table_path) -> str:
    """Write :func:`signature_table` rows as CSV; undefined statistics are left blank."""
    path = Path(table_path)
    if path.parent and not path.parent.exists():
        os.makedirs(path.parent, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=SIGNATURE_COLUMNS)
        writer.writeheader()
        for row in rows:
            writer.writerow({key: ("" if row.get(key) is None else row.get(key)) for key in SIGNATURE_COLUMNS})
    return str(path)
