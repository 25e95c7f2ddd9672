"""Exception hierarchy for mangrove_lulc.

Every error raised by the classification pipeline derives from
:class:`LulcException`, so callers can catch the whole family at once while
still telling data problems apart from sampling or modeling failures.

Propagation rules:

- :class:`DataError` aborts the run: the inputs are unusable.
- :class:`SamplingError` and :class:`ModelingError` abort training and carry
  the offending ``class_id`` so the configuration can be adjusted.
- :class:`AccuracyUndefined` is not an exception. Its singleton
  :data:`NOT_AVAILABLE` is returned in place of a ratio whose denominator is
  zero.

Example:
    >>> try:
    ...     model = train(samples, ModelKind.MAXIMUM_LIKELIHOOD)
    ... except ModelingError as e:
    ...     print(f"Class {e.class_id} cannot be modeled: {e.reason}")

"""

from __future__ import annotations

from typing import Any, Optional


class LulcException(Exception):  # noqa: N818
    """Base exception for all mangrove_lulc errors."""


class ConfigurationError(LulcException):
    """Invalid configuration option.

    Parameters
    ----------
    message : str
        Description of the configuration error
    config_key : str, optional
        The configuration key that caused the error

    """

    def __init__(self, message: str, config_key: Optional[str] = None):
        self.config_key = config_key
        super().__init__(message)


class DataError(LulcException):
    """Input data cannot be used.

    Raised for mismatched coordinate systems, empty rasters or polygon sets,
    malformed geometries and inconsistent band layouts.

    Parameters
    ----------
    reason : str
        Description of the problem
    source : str, optional
        File path or dataset name the problem was found in

    """

    def __init__(self, reason: str, source: Optional[str] = None):
        self.reason = reason
        self.source = source
        message = reason if source is None else f"{source}: {reason}"
        super().__init__(message)


class CrsMismatchError(DataError):
    """Raster and polygons are not in the same coordinate system."""

    def __init__(self, raster_crs: str, vector_crs: str):
        self.raster_crs = raster_crs
        self.vector_crs = vector_crs
        super().__init__(f"CRS mismatch: Raster ({raster_crs}) != Polygons ({vector_crs})")


class SamplingError(LulcException):
    """A class cannot be sampled for the requested split or training set.

    Parameters
    ----------
    class_id : int
        Class code that could not be sampled
    reason : str
        Description of the failure

    """

    def __init__(self, class_id: Any, reason: str):
        self.class_id = class_id
        self.reason = reason
        super().__init__(f"Class {class_id}: {reason}")


class ModelingError(LulcException):
    """A class cannot be modeled by the classifier.

    Parameters
    ----------
    class_id : int
        Class code that could not be modeled
    reason : str
        Description of the failure

    """

    def __init__(self, class_id: Any, reason: str):
        self.class_id = class_id
        self.reason = reason
        super().__init__(f"Class {class_id}: {reason}")


class InsufficientSamplesError(SamplingError, ModelingError):
    """A class has no training pixels left to model.

    Both a sampling and a modeling failure: the class was not sampled, so it
    cannot be given a place in the classifier's label space.
    """

    def __init__(self, class_id: Any, sample_count: int = 0, class_distribution: Optional[dict] = None):
        self.sample_count = sample_count
        self.class_distribution = class_distribution
        reason = f"only {sample_count} training pixels available"
        if class_distribution:
            distribution_str = ", ".join(f"Class {k}: {v}" for k, v in sorted(class_distribution.items()))
            reason += f" (distribution: {distribution_str})"
        LulcException.__init__(self, f"Class {class_id}: {reason}")
        self.class_id = class_id
        self.reason = reason


class DegenerateCovarianceError(ModelingError):
    """The covariance matrix of a class is undefined or singular."""


class DependencyError(LulcException):
    """Optional dependency needed for an operation is not installed.

    Parameters
    ----------
    package_name : str
        Name of the missing package
    reason : str
        Description of the issue

    """

    def __init__(self, package_name: str, reason: str):
        self.package_name = package_name
        self.reason = reason
        super().__init__(f"Dependency error for '{package_name}': {reason}")


class AccuracyUndefined:
    """Marker for an accuracy value whose denominator is zero.

    Use the :data:`NOT_AVAILABLE` singleton rather than new instances.
    """

    _instance: Optional["AccuracyUndefined"] = None

    def __new__(cls) -> "AccuracyUndefined":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOT_AVAILABLE"

    def __str__(self) -> str:
        return "n/a"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self):
        return (AccuracyUndefined, ())


NOT_AVAILABLE = AccuracyUndefined()
