"""Random-forest model with hard majority voting."""

from __future__ import annotations

from typing import Dict, Optional, Sequence, Tuple

import numpy as np
from sklearn.ensemble import RandomForestClassifier

from .. import constants
from ..classifier_config import ModelKind


class RandomForestModel:
    """Ensemble of decision trees voting by majority.

    Every tree is grown on a bootstrap resample of the (per-class balanced)
    training set and considers a random subset of ``sqrt(n_bands)`` bands at
    each split. Each tree casts one vote per pixel; ties between classes go
    to the lowest class code.
    """

    kind = ModelKind.RANDOM_FOREST

    def __init__(
        self,
        band_names: Sequence[str] = (),
        tree_count: int = constants.DEFAULT_TREE_COUNT,
        seed: int = constants.DEFAULT_SEED,
        n_jobs: Optional[int] = None,
    ):
        self.band_names: Tuple[str, ...] = tuple(band_names)
        self.tree_count = int(tree_count)
        self.seed = int(seed)
        self.n_jobs = n_jobs
        self.classes_ = np.empty(0, dtype=np.int64)
        self.training_counts: Dict[int, int] = {}
        self.available_counts: Dict[int, int] = {}
        self.estimator: Optional[RandomForestClassifier] = None

    def learn(self, x: np.ndarray, y: np.ndarray):
        """Fit the ensemble on samples ``x`` with class codes ``y``."""
        self.estimator = RandomForestClassifier(
            n_estimators=self.tree_count,
            max_features="sqrt",
            bootstrap=True,
            random_state=self.seed,
            n_jobs=self.n_jobs,
        )
        self.estimator.fit(np.asarray(x, dtype=np.float64), np.asarray(y).ravel())
        # sklearn sorts classes_ ascending; trees predict indices into it.
        self.classes_ = self.estimator.classes_.astype(np.int64)
        return self

    def votes(self, xt: np.ndarray) -> np.ndarray:
        """Number of trees voting for each class, shape (n, C)."""
        xt = np.asarray(xt, dtype=np.float64)
        counts = np.zeros((xt.shape[0], self.classes_.size), dtype=np.int64)
        rows = np.arange(xt.shape[0])
        for tree in self.estimator.estimators_:
            counts[rows, tree.predict(xt).astype(np.int64)] += 1
        return counts

    def predict(self, xt: np.ndarray) -> np.ndarray:
        """Majority-vote class code of each sample."""
        xt = np.asarray(xt, dtype=np.float64)
        if xt.shape[0] == 0:
            return np.empty(0, dtype=np.int64)
        return self.classes_[np.argmax(self.votes(xt), axis=1)]

    def predict_proba(self, xt: np.ndarray) -> np.ndarray:
        """Share of trees voting for each class."""
        return self.votes(xt) / float(len(self.estimator.estimators_))
