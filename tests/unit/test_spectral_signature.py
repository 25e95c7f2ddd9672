"""Tests for per-class spectral signatures."""

from __future__ import annotations

import csv
import math

import pytest

from mangrove_lulc.domain.models import PixelSamples
from mangrove_lulc.signatures import signature_table, summarize, write_signature_table


def _samples():
    return PixelSamples(
        ("NIR", "G"),
        [[1.0, 10.0], [2.0, 20.0], [3.0, 30.0], [4.0, 40.0], [7.0, 70.0]],
        [1, 1, 1, 1, 2],
    )


def test_statistics_of_one_slice():
    stats = summarize(_samples())[(1, "NIR")]

    assert stats.count == 4
    assert stats.mean == pytest.approx(2.5)
    assert stats.max == 4.0
    # Linear interpolation between order statistics.
    assert stats.p5 == pytest.approx(1.15)
    assert stats.p95 == pytest.approx(3.85)
    # Sample standard deviation (n - 1 in the denominator).
    assert stats.std == pytest.approx(math.sqrt(5.0 / 3.0))


def test_single_pixel_slice_has_no_spread():
    stats = summarize(_samples())[(2, "G")]

    assert stats.count == 1
    assert stats.mean == 70.0
    assert stats.p5 == 70.0 and stats.p95 == 70.0
    assert stats.std is None


def test_requested_class_without_samples_reports_none():
    stats = summarize(_samples(), classes=[1, 2, 5])

    empty = stats[(5, "NIR")]
    assert empty.count == 0
    assert empty.mean is None
    assert empty.p5 is None
    assert empty.p95 is None
    assert empty.max is None
    assert empty.std is None


def test_every_class_and_band_is_reported():
    assert set(summarize(_samples())) == {(1, "NIR"), (1, "G"), (2, "NIR"), (2, "G")}


def test_table_is_ordered_by_class_then_wavelength():
    rows = signature_table(summarize(_samples()), {"G": 560.0, "NIR": 842.0})

    assert [(r["class_id"], r["band"]) for r in rows] == [(1, "G"), (1, "NIR"), (2, "G"), (2, "NIR")]
    assert rows[0]["class_name"] == "Terrestrial Forest"
    assert rows[1]["wavelength"] == 842.0


def test_write_signature_table(tmp_path):
    rows = signature_table(summarize(_samples()), {"G": 560.0, "NIR": 842.0})

    path = write_signature_table(rows, tmp_path / "signatures.csv")

    with open(path, newline="", encoding="utf-8") as fh:
        written = list(csv.DictReader(fh))
    assert len(written) == 4
    assert written[2]["class_id"] == "2"
    assert written[2]["std"] == ""
