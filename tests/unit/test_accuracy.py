"""Tests for the label-keyed confusion matrix and accuracy report."""

from __future__ import annotations

import csv

import numpy as np
import pytest

from mangrove_lulc.accuracy import ConfusionMatrix, evaluate, format_metric, write_confusion_matrix
from mangrove_lulc.domain.exceptions import NOT_AVAILABLE, AccuracyUndefined, DataError

PREDICTED = [1, 1, 2, 2, 3]
REFERENCE = [1, 2, 2, 2, 3]


def test_matrix_is_keyed_by_predicted_then_reference():
    matrix = evaluate(PREDICTED, REFERENCE).matrix

    assert matrix.count(1, 1) == 1
    assert matrix.count(1, 2) == 1
    assert matrix.count(2, 1) == 0
    assert matrix.count(2, 2) == 2
    assert matrix.row_sum(1) == 2
    assert matrix.column_sum(2) == 3
    assert matrix.trace() == 4
    assert matrix.total() == 5


def test_accuracies():
    report = evaluate(PREDICTED, REFERENCE)

    assert report.overall_accuracy == pytest.approx(0.8)
    assert report.producer_accuracy[1] == pytest.approx(1.0)
    assert report.producer_accuracy[2] == pytest.approx(2.0 / 3.0)
    assert report.user_accuracy[1] == pytest.approx(0.5)
    assert report.user_accuracy[2] == pytest.approx(1.0)
    assert report.kappa == pytest.approx(11.0 / 16.0)
    assert report.f1[2] == pytest.approx(0.8)


def test_class_without_pixels_is_not_available():
    report = evaluate(PREDICTED, REFERENCE, classes=[1, 2, 3, 4])

    assert report.labels == (1, 2, 3, 4)
    assert report.producer_accuracy[4] is NOT_AVAILABLE
    assert report.user_accuracy[4] is NOT_AVAILABLE
    assert report.f1[4] is NOT_AVAILABLE
    assert report.overall_accuracy == pytest.approx(0.8)


def test_classes_given_as_array():
    report = evaluate(np.array([1, 2]), np.array([1, 2]), classes=np.array([1, 2, 3]))

    assert report.labels == (1, 2, 3)
    assert report.overall_accuracy == pytest.approx(1.0)
    assert report.producer_accuracy[3] is NOT_AVAILABLE


def test_empty_input_is_not_available():
    report = evaluate([], [])

    assert report.matrix.total() == 0
    assert report.overall_accuracy is NOT_AVAILABLE
    assert report.kappa is NOT_AVAILABLE


def test_not_available_marker():
    assert AccuracyUndefined() is NOT_AVAILABLE
    assert not NOT_AVAILABLE
    assert repr(NOT_AVAILABLE) == "NOT_AVAILABLE"
    assert format_metric(NOT_AVAILABLE) == "n/a"
    assert format_metric(0.5) == "0.5000"


def test_missing_pairs_are_excluded():
    report = evaluate([1, 0, 2, None, 2], [1, 1, float("nan"), 2, 2], nodata=0)

    assert report.matrix.total() == 2
    assert report.overall_accuracy == pytest.approx(1.0)


def test_class_order_does_not_move_counts():
    ordered = evaluate(PREDICTED, REFERENCE, classes=[1, 2, 3])
    shuffled = evaluate(PREDICTED, REFERENCE, classes=[3, 1, 2])

    assert ordered.matrix == shuffled.matrix
    assert ordered.producer_accuracy == shuffled.producer_accuracy
    assert ordered.user_accuracy == shuffled.user_accuracy

    labels, array = ordered.matrix.to_array([3, 1, 2])
    assert labels == (3, 1, 2)
    assert array[1, 2] == ordered.matrix.count(1, 2)
    assert array[0, 0] == ordered.matrix.count(3, 3)


def test_relabeling_classes_relabels_accuracies():
    renamed = {1: 9, 2: 4, 3: 6}
    report = evaluate(PREDICTED, REFERENCE)
    relabeled = evaluate([renamed[p] for p in PREDICTED], [renamed[r] for r in REFERENCE])

    for old, new in renamed.items():
        assert relabeled.producer_accuracy[new] == report.producer_accuracy[old]
        assert relabeled.user_accuracy[new] == report.user_accuracy[old]


def test_matrix_conserves_valid_pairs():
    rng = np.random.default_rng(0)
    predicted = rng.integers(0, 5, size=200)
    reference = rng.integers(1, 5, size=200)

    report = evaluate(predicted, reference, nodata=0)

    _, array = report.matrix.to_array()
    assert array.sum() == report.matrix.total() == int((predicted != 0).sum())


def test_accuracies_are_bounded():
    rng = np.random.default_rng(1)
    report = evaluate(rng.integers(1, 6, size=300), rng.integers(1, 6, size=300), classes=range(1, 8))

    values = [report.overall_accuracy, *report.producer_accuracy.values(), *report.user_accuracy.values()]
    for value in values:
        if value is not NOT_AVAILABLE:
            assert 0.0 <= value <= 1.0


def test_length_mismatch():
    with pytest.raises(DataError):
        evaluate([1, 2], [1])


def test_from_pairs():
    matrix = ConfusionMatrix.from_pairs([(1, 1), (2, 1), (1, 1)], labels=[3])

    assert matrix.labels == (1, 2, 3)
    assert matrix.count(1, 1) == 2
    assert matrix.column_sum(1) == 3
    assert matrix.row_sum(3) == 0


def test_write_confusion_matrix(tmp_path):
    report = evaluate(PREDICTED, REFERENCE, classes=[1, 2, 3, 4])

    path = write_confusion_matrix(report, tmp_path / "out" / "matrix.csv")

    with open(path, newline="", encoding="utf-8") as fh:
        rows = list(csv.reader(fh))
    assert rows[0] == ["predicted\\reference", "1", "2", "3", "4"]
    assert rows[1] == ["1", "1", "1", "0", "0"]
    assert rows[2] == ["2", "0", "2", "0", "0"]
    accuracies = {row[0]: row[1:] for row in rows[7:11]}
    assert accuracies["2"] == ["0.6667", "1.0000", "0.8000"]
    assert accuracies["4"] == ["n/a", "n/a", "n/a"]
    assert ["overall_accuracy", "0.8000"] in rows
