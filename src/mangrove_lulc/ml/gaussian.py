"""Gaussian Maximum-Likelihood classifier.

Each class ``c`` is modeled by a multivariate normal distribution with mean
``mu_c`` and covariance ``sigma_c`` estimated from its training pixels. A
pixel ``x`` is assigned to the class maximizing the discriminant

    g_c(x) = -0.5 * log det(sigma_c) - 0.5 * (x - mu_c)' inv(sigma_c) (x - mu_c) + log(pi_c)

The covariance is inverted through its eigen-decomposition. A singular
covariance raises :class:`DegenerateCovarianceError` unless a ridge
``tau > 0`` is configured, in which case ``sigma_c + tau * I`` is used.
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Sequence, Tuple

import numpy as np
from numpy import linalg

from .. import constants
from ..classifier_config import ModelKind
from ..domain.exceptions import ConfigurationError, DegenerateCovarianceError


class GaussianMaximumLikelihood:
    """Per-class Gaussian model with optional ridge regularization.

    Attributes
    ----------
    classes_ : numpy.ndarray
        Class codes, ascending. Ties in :meth:`decision_function` resolve to
        the first (lowest) code.
    mean : numpy.ndarray, shape (C, d)
        Band-wise mean of each class
    cov : numpy.ndarray, shape (C, d, d)
        Sample covariance (``ddof=1``) of each class
    prior : numpy.ndarray, shape (C,)
        Class prior probabilities
    tau : float
        Ridge added to the covariance eigenvalues

    """

    kind = ModelKind.MAXIMUM_LIKELIHOOD

    def __init__(self, band_names: Sequence[str] = (), tau: float = constants.DEFAULT_REGULARIZATION):
        self.band_names: Tuple[str, ...] = tuple(band_names)
        self.tau = float(tau)
        self.classes_ = np.empty(0, dtype=np.int64)
        self.ni = np.empty(0)
        self.prior = np.empty(0)
        self.mean = np.empty((0, 0))
        self.cov = np.empty((0, 0, 0))
        self.Q = np.empty((0, 0, 0))
        self.L = np.empty((0, 0))
        self.training_counts: Dict[int, int] = {}
        self.available_counts: Dict[int, int] = {}
        self._inv_cov = np.empty((0, 0, 0))
        self._logdet = np.empty(0)

    def learn(self, x: np.ndarray, y: np.ndarray, priors: Optional[Mapping[int, float]] = None):
        """Estimate mean, covariance and prior of each class.

        Input:
            x : the training samples, shape (n, d)
            y : the class codes, shape (n,)
            priors : optional class code -> prior probability; uniform if None
        Output:
            self
        """
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y).ravel()
        classes = np.unique(y)
        C = classes.shape[0]
        d = x.shape[1]

        self.classes_ = classes.astype(np.int64)
        self.ni = np.empty(C)
        self.mean = np.empty((C, d))
        self.cov = np.empty((C, d, d))
        self.Q = np.empty((C, d, d))
        self.L = np.empty((C, d))
        self._inv_cov = np.empty((C, d, d))
        self._logdet = np.empty(C)

        for c, label in enumerate(self.classes_):
            j = np.where(y == label)[0]
            self.ni[c] = j.size
            if j.size < 2:
                raise DegenerateCovarianceError(
                    int(label),
                    f"covariance undefined with {j.size} training pixel(s); at least 2 are required",
                )
            self.mean[c, :] = np.mean(x[j, :], axis=0)
            self.cov[c, :, :] = np.cov(x[j, :], rowvar=False, ddof=1).reshape(d, d)

            # Spectral decomposition, eigenvalues in decreasing order
            L, Q = linalg.eigh(self.cov[c, :, :])
            idx = L.argsort()[::-1]
            self.L[c, :] = L[idx]
            self.Q[c, :, :] = Q[:, idx]
            self._check_conditioning(int(label), self.L[c, :])
            self._inv_cov[c], self._logdet[c] = self.compute_inverse_logdet(c, self.tau)

        self.prior = self._resolve_priors(priors)
        return self

    def _check_conditioning(self, label: int, eigenvalues: np.ndarray) -> None:
        if not np.all(np.isfinite(eigenvalues)):
            raise DegenerateCovarianceError(label, "covariance contains non-finite values")
        regularized = eigenvalues + self.tau
        if regularized[0] <= 0 or regularized[-1] <= constants.SINGULAR_TOLERANCE * regularized[0]:
            if self.tau > 0:
                raise DegenerateCovarianceError(
                    label, f"covariance is singular even with regularization tau={self.tau}",
                )
            raise DegenerateCovarianceError(
                label,
                "covariance is singular (too few or collinear training pixels); "
                "collect more samples or set a positive regularization",
            )

    def _resolve_priors(self, priors: Optional[Mapping[int, float]]) -> np.ndarray:
        C = self.classes_.size
        if priors is None:
            return np.full(C, 1.0 / C)
        missing = [int(c) for c in self.classes_ if int(c) not in priors]
        if missing:
            raise ConfigurationError(f"No prior given for classes {missing}", "priors")
        prior = np.array([float(priors[int(c)]) for c in self.classes_])
        if np.any(~np.isfinite(prior)) or np.any(prior <= 0):
            raise ConfigurationError(f"Class priors must be positive, got {dict(priors)}", "priors")
        return prior

    def compute_inverse_logdet(self, c: int, tau: float) -> Tuple[np.ndarray, float]:
        """Compute inverse covariance matrix and log determinant."""
        Lr = self.L[c, :] + tau  # Regularized eigenvalues
        temp = self.Q[c, :, :] * (1 / Lr)
        invCov = np.dot(temp, self.Q[c, :, :].T)  # Pre compute the inverse
        logdet = np.sum(np.log(Lr))  # Compute the log determinant
        return invCov, float(logdet)

    def decision_function(self, xt: np.ndarray) -> np.ndarray:
        """Discriminant ``g_c(x)`` of every sample for every class, shape (n, C)."""
        xt = np.asarray(xt, dtype=np.float64)
        nt = xt.shape[0]
        C = self.classes_.size
        K = np.empty((nt, C))
        log_prior = np.log(self.prior)
        for c in range(C):
            xtc = xt - self.mean[c, :]
            mahalanobis = np.einsum("ij,jk,ik->i", xtc, self._inv_cov[c], xtc)
            K[:, c] = -0.5 * self._logdet[c] - 0.5 * mahalanobis + log_prior[c]
        return K

    def mahalanobis(self, xt: np.ndarray) -> np.ndarray:
        """Squared Mahalanobis distance of every sample to every class mean."""
        xt = np.asarray(xt, dtype=np.float64)
        D = np.empty((xt.shape[0], self.classes_.size))
        for c in range(self.classes_.size):
            xtc = xt - self.mean[c, :]
            D[:, c] = np.einsum("ij,jk,ik->i", xtc, self._inv_cov[c], xtc)
        return D

    def predict(self, xt: np.ndarray) -> np.ndarray:
        """Class code of each sample; ties go to the lowest class code."""
        xt = np.asarray(xt, dtype=np.float64)
        if xt.shape[0] == 0:
            return np.empty(0, dtype=np.int64)
        return self.classes_[np.argmax(self.decision_function(xt), axis=1)]

    def predict_proba(self, xt: np.ndarray) -> np.ndarray:
        """Posterior probability of each class, shape (n, C)."""
        K = self.decision_function(xt)
        K -= K.max(axis=1, keepdims=True)
        np.exp(K, out=K)
        K /= K.sum(axis=1, keepdims=True)
        return K
