"""Centralized classifier configuration for mangrove_lulc.

Supported model families are defined here once, with the short codes and
spellings accepted from configuration files and the command line.
"""

from __future__ import annotations

from enum import Enum

from .domain.exceptions import ConfigurationError


class ModelKind(str, Enum):
    """Model family used by the classifier."""

    MAXIMUM_LIKELIHOOD = "maximum-likelihood"
    RANDOM_FOREST = "random-forest"

    def __str__(self) -> str:
        return self.value


# Classifier short codes
CLASSIFIER_CODES = ["MLC", "RF"]

# Full classifier names
CLASSIFIER_NAMES = [
    "Maximum Likelihood Classifier",
    "Random Forest",
]

CODE_TO_KIND = {
    "MLC": ModelKind.MAXIMUM_LIKELIHOOD,
    "RF": ModelKind.RANDOM_FOREST,
}

CODE_TO_NAME = dict(zip(CLASSIFIER_CODES, CLASSIFIER_NAMES))

# Accepted spellings -> model kind
_ALIASES = {
    "mlc": ModelKind.MAXIMUM_LIKELIHOOD,
    "ml": ModelKind.MAXIMUM_LIKELIHOOD,
    "maximum-likelihood": ModelKind.MAXIMUM_LIKELIHOOD,
    "maximum_likelihood": ModelKind.MAXIMUM_LIKELIHOOD,
    "gaussian": ModelKind.MAXIMUM_LIKELIHOOD,
    "rf": ModelKind.RANDOM_FOREST,
    "random-forest": ModelKind.RANDOM_FOREST,
    "random_forest": ModelKind.RANDOM_FOREST,
    "randomforest": ModelKind.RANDOM_FOREST,
}


def parse_model_kind(value) -> ModelKind:
    """Return the :class:`ModelKind` named by ``value``."""
    if isinstance(value, ModelKind):
        return value
    key = str(value).strip().lower()
    if key not in _ALIASES:
        accepted = ", ".join(sorted(_ALIASES))
        raise ConfigurationError(f"Unknown model kind '{value}'. Accepted values: {accepted}", "model_kind")
    return _ALIASES[key]


def get_classifier_name(kind) -> str:
    """Get the display name of a model kind or short code."""
    kind = CODE_TO_KIND.get(str(kind).upper(), None) or parse_model_kind(kind)
    for code, mapped in CODE_TO_KIND.items():
        if mapped is kind:
            return CODE_TO_NAME[code]
    return CLASSIFIER_NAMES[0]


def is_valid_classifier(value) -> bool:
    """Check if ``value`` names a supported model kind."""
    try:
        parse_model_kind(value)
    except ConfigurationError:
        return False
    return True
