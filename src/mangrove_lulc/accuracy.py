"""Accuracy assessment from predicted and reference labels.

The confusion matrix is keyed by class code: ``matrix.count(p, r)`` is the
number of validation pixels predicted as ``p`` whose reference class is
``r``. Rows are predictions and columns are references, and nothing is ever
looked up by position, so reordering or extending the class set cannot
move a count to the wrong class.

- Overall accuracy: ``trace / total``.
- Producer's accuracy of ``c``: ``count(c, c) / column_sum(c)``.
- User's accuracy of ``c``: ``count(c, c) / row_sum(c)``.

A ratio with a zero denominator is reported as :data:`NOT_AVAILABLE`.
"""

from __future__ import annotations

import csv
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .domain.exceptions import NOT_AVAILABLE, AccuracyUndefined, DataError
from .domain.land_cover import class_name

Metric = Union[float, AccuracyUndefined]


class ConfusionMatrix:
    """Label-keyed count table of (predicted class, reference class) pairs."""

    def __init__(self, labels: Iterable[int] = ()):
        self._labels = set(int(label) for label in labels)
        self._counts: Dict[Tuple[int, int], int] = {}

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[int, int]], labels: Iterable[int] = ()) -> "ConfusionMatrix":
        matrix = cls(labels)
        for predicted, reference in pairs:
            matrix.add(predicted, reference)
        return matrix

    def add(self, predicted: int, reference: int, count: int = 1) -> None:
        key = (int(predicted), int(reference))
        self._labels.update(key)
        self._counts[key] = self._counts.get(key, 0) + int(count)

    @property
    def labels(self) -> Tuple[int, ...]:
        """All class codes seen or declared, ascending."""
        return tuple(sorted(self._labels))

    def count(self, predicted: int, reference: int) -> int:
        return self._counts.get((int(predicted), int(reference)), 0)

    def row_sum(self, predicted: int) -> int:
        """Pixels predicted as ``predicted``."""
        predicted = int(predicted)
        return sum(n for (p, _), n in self._counts.items() if p == predicted)

    def column_sum(self, reference: int) -> int:
        """Pixels whose reference class is ``reference``."""
        reference = int(reference)
        return sum(n for (_, r), n in self._counts.items() if r == reference)

    def trace(self) -> int:
        return sum(n for (p, r), n in self._counts.items() if p == r)

    def total(self) -> int:
        return sum(self._counts.values())

    def items(self) -> List[Tuple[Tuple[int, int], int]]:
        return sorted(self._counts.items())

    def to_array(self, labels: Optional[Sequence[int]] = None) -> Tuple[Tuple[int, ...], np.ndarray]:
        """Dense copy for rendering: rows = predicted, columns = reference."""
        labels = tuple(int(label) for label in (labels if labels is not None else self.labels))
        array = np.zeros((len(labels), len(labels)), dtype=np.int64)
        for i, predicted in enumerate(labels):
            for j, reference in enumerate(labels):
                array[i, j] = self.count(predicted, reference)
        return labels, array

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ConfusionMatrix):
            return NotImplemented
        return self.labels == other.labels and self.items() == other.items()

    def __repr__(self) -> str:
        return f"ConfusionMatrix(labels={list(self.labels)}, total={self.total()})"


@dataclass(frozen=True)
class AccuracyReport:
    matrix: ConfusionMatrix
    overall_accuracy: Metric
    producer_accuracy: Dict[int, Metric]
    user_accuracy: Dict[int, Metric]
    kappa: Metric
    f1: Dict[int, Metric]

    @property
    def labels(self) -> Tuple[int, ...]:
        return self.matrix.labels

    def to_rows(self) -> List[dict]:
        """One row per class, ready for tabular rendering."""
        return [
            {
                "class_id": c,
                "class_name": class_name(c),
                "reference_total": self.matrix.column_sum(c),
                "predicted_total": self.matrix.row_sum(c),
                "correct": self.matrix.count(c, c),
                "producer_accuracy": self.producer_accuracy[c],
                "user_accuracy": self.user_accuracy[c],
                "f1": self.f1[c],
            }
            for c in self.labels
        ]


def ratio(numerator: float, denominator: float) -> Metric:
    """``numerator / denominator`` or :data:`NOT_AVAILABLE` when the denominator is zero."""
    if denominator == 0:
        return NOT_AVAILABLE
    return numerator / denominator


def overall_accuracy(matrix: ConfusionMatrix) -> Metric:
    return ratio(matrix.trace(), matrix.total())


def producer_accuracy(matrix: ConfusionMatrix, class_id: int) -> Metric:
    return ratio(matrix.count(class_id, class_id), matrix.column_sum(class_id))


def user_accuracy(matrix: ConfusionMatrix, class_id: int) -> Metric:
    return ratio(matrix.count(class_id, class_id), matrix.row_sum(class_id))


def kappa(matrix: ConfusionMatrix) -> Metric:
    """Cohen's kappa coefficient."""
    n = matrix.total()
    if n == 0:
        return NOT_AVAILABLE
    chance = sum(matrix.row_sum(c) * matrix.column_sum(c) for c in matrix.labels)
    return ratio(n * matrix.trace() - chance, n * n - chance)


def f1_score(matrix: ConfusionMatrix, class_id: int) -> Metric:
    """F1 = 2*TP / (2*TP + FP + FN) = 2*TP / (row_sum + column_sum)."""
    return ratio(2 * matrix.count(class_id, class_id), matrix.row_sum(class_id) + matrix.column_sum(class_id))


def _is_missing(value, nodata) -> bool:
    if value is None:
        return True
    try:
        if math.isnan(value):
            return True
    except TypeError:
        pass
    return nodata is not None and value == nodata


def evaluate(
    predictions: Sequence,
    reference: Sequence,
    classes: Optional[Iterable[int]] = None,
    nodata: Optional[int] = None,
) -> AccuracyReport:
    """Cross-tabulate predictions against reference labels.

    Parameters
    ----------
    predictions : sequence of int
        Predicted class code of each validation pixel
    reference : sequence of int
        Reference class code of the same pixels
    classes : iterable of int, optional
        Classes to report even if absent from both sequences
    nodata : int, optional
        Code marking an unclassified pixel. Pairs where either side is
        ``None``, NaN or ``nodata`` are not counted.

    Returns
    -------
    AccuracyReport

    """
    predictions = list(np.asarray(predictions, dtype=object).ravel()) if len(predictions) else []
    reference = list(np.asarray(reference, dtype=object).ravel()) if len(reference) else []
    if len(predictions) != len(reference):
        raise DataError(f"{len(predictions)} predictions for {len(reference)} reference labels")

    matrix = ConfusionMatrix(() if classes is None else classes)
    for predicted, ref in zip(predictions, reference):
        if _is_missing(predicted, nodata) or _is_missing(ref, nodata):
            continue
        matrix.add(predicted, ref)

    labels = matrix.labels
    return AccuracyReport(
        matrix=matrix,
        overall_accuracy=overall_accuracy(matrix),
        producer_accuracy={c: producer_accuracy(matrix, c) for c in labels},
        user_accuracy={c: user_accuracy(matrix, c) for c in labels},
        kappa=kappa(matrix),
        f1={c: f1_score(matrix, c) for c in labels},
    )


def format_metric(value: Metric, digits: int = 4) -> str:
    if isinstance(value, AccuracyUndefined):
        return str(value)
    return f"{value:.{digits}f}"


def write_confusion_matrix(report: AccuracyReport, matrix_path, labels: Optional[Sequence[int]] = None) -> str:
    """Write the confusion matrix and per-class accuracies as CSV.

    The header row lists reference classes; each following row starts with
    the predicted class. Producer's/user's accuracies follow the matrix.
    """
    path = Path(matrix_path)
    if path.parent and not path.parent.exists():
        os.makedirs(path.parent, exist_ok=True)
    labels, array = report.matrix.to_array(labels)
    with path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.writer(fh)
        writer.writerow(["predicted\\reference", *labels])
        for label, row in zip(labels, array):
            writer.writerow([label, *row.tolist()])
        writer.writerow([])
        writer.writerow(["class", "producer_accuracy", "user_accuracy", "f1"])
        for row in report.to_rows():
            if row["class_id"] not in labels:
                continue
            writer.writerow(
                [
                    row["class_id"],
                    format_metric(row["producer_accuracy"]),
                    format_metric(row["user_accuracy"]),
                    format_metric(row["f1"]),
                ],
            )
        writer.writerow([])
        writer.writerow(["overall_accuracy", format_metric(report.overall_accuracy)])
        writer.writerow(["kappa", format_metric(report.kappa)])
    return str(path)
