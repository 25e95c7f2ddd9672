"""Stratified train/validation splitting of reference polygons.

Polygons are split class by class: each class keeps
``round(train_fraction * n_class)`` randomly chosen polygons for training and
sends the rest to validation. Each class draws from its own generator,
seeded from ``(seed, class_id)``, and polygons are ordered by id before
drawing, so the partition depends only on the polygon set, the fraction and
the seed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Hashable, Iterable, List, Sequence, Tuple

import numpy as np

from .. import constants
from ..config import check_seed
from ..domain.exceptions import ConfigurationError, DataError, SamplingError
from ..domain.models import Polygon, Split
from ..logging import Reporter, ensure_reporter


@dataclass(frozen=True)
class PolygonSplit:
    """Result of :func:`split`: tagged training and validation polygons."""

    training: Tuple[Polygon, ...]
    validation: Tuple[Polygon, ...]

    @property
    def polygons(self) -> Tuple[Polygon, ...]:
        return self.training + self.validation

    def counts(self) -> Dict[int, Tuple[int, int]]:
        """``class_id -> (n_training, n_validation)``."""
        counts: Dict[int, List[int]] = {}
        for polygon in self.training:
            counts.setdefault(polygon.class_id, [0, 0])[0] += 1
        for polygon in self.validation:
            counts.setdefault(polygon.class_id, [0, 0])[1] += 1
        return {label: (n[0], n[1]) for label, n in sorted(counts.items())}


def class_generator(seed: int, class_id: int) -> np.random.Generator:
    """Independent generator for one class, reproducible from ``seed``."""
    return np.random.default_rng([int(seed), int(class_id)])


def count_polygons_per_class(polygons: Iterable[Polygon]) -> Dict[int, int]:
    """Count how many polygons each class has."""
    class_counts: Dict[int, int] = {}
    for polygon in polygons:
        class_counts[polygon.class_id] = class_counts.get(polygon.class_id, 0) + 1
    return class_counts


def split(
    polygons: Sequence[Polygon],
    train_fraction: float = constants.DEFAULT_TRAIN_FRACTION,
    seed: int = constants.DEFAULT_SEED,
    strict: bool = False,
    reporter: Reporter | None = None,
) -> PolygonSplit:
    """Split polygons into training and validation sets, stratified by class.

    Args:
        polygons: Reference polygons with unique ids.
        train_fraction: Share of each class used for training, in (0, 1).
        seed: Seed of the per-class generators.
        strict: If True, raise :class:`SamplingError` when a class ends up
            with an empty training or validation side. Otherwise the class is
            only reported.
        reporter: Optional reporter for diagnostics.

    Returns:
        PolygonSplit holding the tagged training and validation polygons,
        ordered by class then id.

    Raises:
        DataError: If the polygon set is empty or ids are not unique, or a
            class code is negative.
        ConfigurationError: If ``train_fraction`` is outside (0, 1) or
            ``seed`` is negative.
        SamplingError: In strict mode, for a class with an empty side.

    Example:
        >>> result = split(polygons, train_fraction=0.7, seed=1234)
        >>> result.counts()
        {1: (3, 1), 2: (3, 1)}

    """
    report = ensure_reporter(reporter)
    if not 0.0 < train_fraction < 1.0:
        raise ConfigurationError(f"train_fraction must be in (0, 1), got {train_fraction}", "train_fraction")
    check_seed(seed)

    class_to_polygons = _group_by_class(polygons)

    training: List[Polygon] = []
    validation: List[Polygon] = []
    one_sided: List[Tuple[int, str]] = []
    for class_id in sorted(class_to_polygons):
        members = class_to_polygons[class_id]
        n_train = round(train_fraction * len(members))
        rng = class_generator(seed, class_id)
        chosen = set(rng.choice(len(members), size=n_train, replace=False).tolist())
        for index, polygon in enumerate(members):
            if index in chosen:
                training.append(polygon.with_split(Split.TRAINING))
            else:
                validation.append(polygon.with_split(Split.VALIDATION))
        if n_train == 0:
            one_sided.append((class_id, str(Split.TRAINING)))
        elif n_train == len(members):
            one_sided.append((class_id, str(Split.VALIDATION)))
        report.debug(f"Class {class_id}: {n_train} training / {len(members) - n_train} validation polygons")

    for class_id, side in one_sided:
        message = f"Class {class_id} has no {side} polygons with train_fraction={train_fraction}"
        if strict:
            raise SamplingError(class_id, f"no {side} polygons with train_fraction={train_fraction}")
        report.warning(f"Warning: {message}")

    report.info(f"Split {len(polygons)} polygons into {len(training)} training and {len(validation)} validation")
    return PolygonSplit(training=tuple(training), validation=tuple(validation))


def _group_by_class(polygons: Sequence[Polygon]) -> Dict[int, List[Polygon]]:
    if not polygons:
        raise DataError("Polygon set is empty")

    seen: set[Hashable] = set()
    duplicates: List[Any] = []
    class_to_polygons: Dict[int, List[Polygon]] = {}
    for polygon in polygons:
        if polygon.id in seen:
            duplicates.append(polygon.id)
        seen.add(polygon.id)
        class_to_polygons.setdefault(int(polygon.class_id), []).append(polygon)
    if duplicates:
        raise DataError(f"Polygon ids must be unique, duplicated: {sorted(set(duplicates), key=repr)}")
    negative = sorted(c for c in class_to_polygons if c < 0)
    if negative:
        raise DataError(f"Class codes must be non-negative, got {negative}")

    for members in class_to_polygons.values():
        members.sort(key=_id_sort_key)
    return class_to_polygons


def _id_sort_key(polygon: Polygon):
    # Mixed id types sort by type name first so ordering never raises.
    return (type(polygon.id).__name__, polygon.id)
