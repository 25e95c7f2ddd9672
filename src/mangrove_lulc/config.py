"""Run configuration for the classification pipeline.

Options may be given with snake_case keys or with the camelCase names used
in project documents (``trainFraction``, ``sampleSizePerClass``,
``modelKind``, ``treeCount``). Unknown keys are rejected so that a typo
cannot silently fall back to a default.
"""

from __future__ import annotations

import json
import math
import numbers
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from . import constants
from .classifier_config import ModelKind, parse_model_kind
from .domain.exceptions import ConfigurationError
from .domain.land_cover import DEFAULT_CLASS_CODES

_CAMEL_CASE_KEYS = {
    "trainFraction": "train_fraction",
    "sampleSizePerClass": "sample_size_per_class",
    "modelKind": "model_kind",
    "treeCount": "tree_count",
    "blockRows": "block_rows",
    "idField": "id_field",
    "classField": "class_field",
    "classCodes": "class_codes",
    "nJobs": "n_jobs",
}


@dataclass(frozen=True)
class BandSpec:
    """Band name and its central wavelength in nanometers."""

    name: str
    wavelength: float


@dataclass(frozen=True)
class ClassificationConfig:
    """Recognized pipeline options with their defaults."""

    train_fraction: float = constants.DEFAULT_TRAIN_FRACTION
    sample_size_per_class: int = constants.DEFAULT_SAMPLE_SIZE_PER_CLASS
    seed: int = constants.DEFAULT_SEED
    model_kind: ModelKind = ModelKind.MAXIMUM_LIKELIHOOD
    tree_count: int = constants.DEFAULT_TREE_COUNT
    regularization: float = constants.DEFAULT_REGULARIZATION
    priors: Optional[Dict[int, float]] = None
    block_rows: int = constants.DEFAULT_BLOCK_ROWS
    nodata: int = constants.NODATA_CLASS
    bands: Tuple[BandSpec, ...] = field(
        default_factory=lambda: tuple(BandSpec(name, wl) for name, wl in constants.DEFAULT_BANDS),
    )
    class_codes: Tuple[int, ...] = DEFAULT_CLASS_CODES
    id_field: str = constants.DEFAULT_ID_FIELD
    class_field: str = constants.DEFAULT_CLASS_FIELD
    n_jobs: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "model_kind", parse_model_kind(self.model_kind))
        if self.priors is not None:
            object.__setattr__(self, "priors", {int(k): float(v) for k, v in self.priors.items()})
        object.__setattr__(self, "class_codes", tuple(int(c) for c in self.class_codes))
        object.__setattr__(self, "bands", tuple(_band_spec(b) for b in self.bands))
        self.validate()

    def validate(self) -> None:
        """Raise :class:`ConfigurationError` on the first invalid option."""
        if isinstance(self.train_fraction, bool) or not 0.0 < float(self.train_fraction) < 1.0:
            raise ConfigurationError(
                f"train_fraction must be in (0, 1), got {self.train_fraction}", "train_fraction",
            )
        _require_positive_int(self.sample_size_per_class, "sample_size_per_class")
        _require_positive_int(self.tree_count, "tree_count")
        _require_positive_int(self.block_rows, "block_rows")
        check_seed(self.seed)
        if not math.isfinite(self.regularization) or self.regularization < 0:
            raise ConfigurationError(
                f"regularization must be a non-negative number, got {self.regularization}", "regularization",
            )
        if self.priors is not None:
            bad = {c: p for c, p in self.priors.items() if not (math.isfinite(p) and p > 0)}
            if bad:
                raise ConfigurationError(f"Class priors must be positive, got {bad}", "priors")
        if not self.class_codes:
            raise ConfigurationError("class_codes must not be empty", "class_codes")
        if self.nodata in self.class_codes:
            raise ConfigurationError(
                f"nodata value {self.nodata} collides with a class code", "nodata",
            )
        names = [b.name for b in self.bands]
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Band names must be unique, got {names}", "bands")

    @property
    def band_names(self) -> Tuple[str, ...]:
        return tuple(b.name for b in self.bands)

    @property
    def wavelengths(self) -> Dict[str, float]:
        return {b.name: b.wavelength for b in self.bands}

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "ClassificationConfig":
        """Build a configuration from a plain mapping (e.g. parsed JSON)."""
        return cls().updated(options)

    def updated(self, options: Mapping[str, Any]) -> "ClassificationConfig":
        """Return a copy with ``options`` applied on top of this configuration."""
        known = {f.name for f in fields(self)}
        values: Dict[str, Any] = {}
        for key, value in options.items():
            name = _CAMEL_CASE_KEYS.get(key, key)
            if name not in known:
                raise ConfigurationError(f"Unknown configuration option '{key}'", key)
            if value is None and name not in ("priors", "n_jobs"):
                continue
            values[name] = value
        if "priors" in values and values["priors"] is not None:
            values["priors"] = {int(k): float(v) for k, v in values["priors"].items()}
        for name in ("train_fraction", "regularization"):
            if name in values:
                values[name] = _as_float(values[name], name)
        return replace(self, **values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "train_fraction": self.train_fraction,
            "sample_size_per_class": self.sample_size_per_class,
            "seed": self.seed,
            "model_kind": str(self.model_kind),
            "tree_count": self.tree_count,
            "regularization": self.regularization,
            "priors": dict(self.priors) if self.priors else None,
            "block_rows": self.block_rows,
            "nodata": self.nodata,
            "bands": [{"name": b.name, "wavelength": b.wavelength} for b in self.bands],
            "class_codes": list(self.class_codes),
            "id_field": self.id_field,
            "class_field": self.class_field,
            "n_jobs": self.n_jobs,
        }


def load_config(path, base: Optional[ClassificationConfig] = None) -> ClassificationConfig:
    """Read a JSON configuration file."""
    file_path = Path(path)
    if not file_path.exists():
        raise ConfigurationError(f"Configuration file not found: {file_path}")
    try:
        options = json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid JSON in {file_path}: {exc}") from exc
    if not isinstance(options, dict):
        raise ConfigurationError(f"Configuration in {file_path} must be a JSON object")
    return (base or ClassificationConfig()).updated(options)


def _band_spec(value: Any) -> BandSpec:
    if isinstance(value, BandSpec):
        return value
    if isinstance(value, Mapping):
        try:
            return BandSpec(str(value["name"]), float(value["wavelength"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid band entry {value!r}: {exc}", "bands") from exc
    try:
        name, wavelength = value
        return BandSpec(str(name), float(wavelength))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid band entry {value!r}", "bands") from exc


def check_seed(seed: Any) -> None:
    """Raise :class:`ConfigurationError` unless ``seed`` is a non-negative integer."""
    if not isinstance(seed, numbers.Integral) or isinstance(seed, bool) or seed < 0:
        raise ConfigurationError(f"seed must be a non-negative integer, got {seed!r}", "seed")


def _require_positive_int(value: Any, name: str) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ConfigurationError(f"{name} must be a positive integer, got {value!r}", name)


def _as_float(value: Any, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name} must be a number, got {value!r}", name) from exc
