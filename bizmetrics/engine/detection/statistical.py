"""
Statistical Anomaly Detection - Z-score, IQR and MAD detectors.

Three independent outlier detectors over a numeric series. Each returns the
flagged points as Anomaly records; none of them raise on short or degenerate
input.

Z-score (len >= 3, threshold 2.5):
    z = |x - mean| / std (population std). Flag if z > threshold.
    critical z > 3.5, warning z > 2.5, else info.

IQR (len >= 4):
    Q1/Q3 by the averaged inverted CDF rule, bounds [Q1 - 1.5 IQR, Q3 + 1.5 IQR].
    critical beyond 3 IQR, warning beyond 2 IQR, else info.
    deviation = |x - median| / IQR, expected = median.

MAD (len >= 3, threshold 3.5):
    Modified z-score = 0.6745 * (x - median) / MAD (0 when MAD = 0).
    Flag if |mz| > threshold; critical > 5, warning > 3.5, else info.

Why MAD alongside z-score:
    - A single spike inflates the standard deviation and can mask itself
    - MAD is robust to that, so the ensemble gets a second opinion
    - 0.6745 normalizes MAD to the standard deviation of a normal distribution
"""

import math
from collections.abc import Sequence

import numpy as np
import structlog

from bizmetrics.models.analytics import Anomaly
from bizmetrics.models.enums import AnomalyMethod, AnomalySeverity

logger = structlog.get_logger()

# Quantile rule: fractional n*p takes sorted[ceil(n*p) - 1], integral n*p
# averages the two neighbouring order statistics
QUANTILE_METHOD = "averaged_inverted_cdf"


def quantile(values: Sequence[float], p: float) -> float:
    """Quantile of a series using the averaged inverted CDF rule."""
    return float(np.quantile(np.asarray(values, dtype=float), p, method=QUANTILE_METHOD))


class StatisticalDetector:
    """
    Z-score, IQR and MAD outlier detection for business metric series.

    Attributes:
        zscore_threshold: Z-score flag threshold (default: 2.5)
        mad_threshold: Modified z-score flag threshold (default: 3.5)

    Example:
        >>> detector = StatisticalDetector()
        >>> [a.index for a in detector.detect_iqr([10, 11, 9, 10, 200, 10, 11, 9])]
        [4]
    """

    MAD_NORMALIZATION = 0.6745

    # Severity tiers
    ZSCORE_CRITICAL = 3.5
    ZSCORE_WARNING = 2.5
    IQR_FENCE = 1.5
    IQR_CRITICAL = 3.0
    IQR_WARNING = 2.0
    MAD_CRITICAL = 5.0
    MAD_WARNING = 3.5

    def __init__(self, zscore_threshold: float = 2.5, mad_threshold: float = 3.5):
        if zscore_threshold <= 0 or mad_threshold <= 0:
            raise ValueError("Detection thresholds must be positive")
        self.zscore_threshold = zscore_threshold
        self.mad_threshold = mad_threshold
        self.logger = structlog.get_logger()

    def detect_zscore(
        self, series: Sequence[float], threshold: float | None = None
    ) -> list[Anomaly]:
        """
        Flag points more than ``threshold`` standard deviations from the mean.

        A constant series has no spread and no anomalies.
        """
        if len(series) < 3:
            return []

        threshold = self.zscore_threshold if threshold is None else threshold
        values = np.asarray(series, dtype=float)
        mean = float(np.mean(values))
        std = float(np.std(values))
        if std == 0:
            return []

        anomalies = []
        for index, value in enumerate(values):
            z = abs(float(value) - mean) / std
            if z <= threshold:
                continue

            if z > self.ZSCORE_CRITICAL:
                severity = AnomalySeverity.CRITICAL
            elif z > self.ZSCORE_WARNING:
                severity = AnomalySeverity.WARNING
            else:
                severity = AnomalySeverity.INFO

            anomalies.append(
                Anomaly(
                    index=index,
                    value=float(value),
                    expected=mean,
                    deviation_score=z,
                    severity=severity,
                    method=AnomalyMethod.ZSCORE,
                )
            )

        self._log_detected(AnomalyMethod.ZSCORE, len(values), anomalies)
        return anomalies

    def detect_iqr(self, series: Sequence[float]) -> list[Anomaly]:
        """Flag points outside the 1.5 IQR Tukey fences."""
        if len(series) < 4:
            return []

        values = np.asarray(series, dtype=float)
        q1 = quantile(values, 0.25)
        q3 = quantile(values, 0.75)
        median = quantile(values, 0.5)
        iqr = q3 - q1

        lower = q1 - self.IQR_FENCE * iqr
        upper = q3 + self.IQR_FENCE * iqr

        anomalies = []
        for index, value in enumerate(values):
            value = float(value)
            if lower <= value <= upper:
                continue

            distance = abs(value - median)
            deviation = distance / iqr if iqr != 0 else math.inf

            if value < q1 - self.IQR_CRITICAL * iqr or value > q3 + self.IQR_CRITICAL * iqr:
                severity = AnomalySeverity.CRITICAL
            elif value < q1 - self.IQR_WARNING * iqr or value > q3 + self.IQR_WARNING * iqr:
                severity = AnomalySeverity.WARNING
            else:
                severity = AnomalySeverity.INFO

            anomalies.append(
                Anomaly(
                    index=index,
                    value=value,
                    expected=median,
                    deviation_score=deviation,
                    severity=severity,
                    method=AnomalyMethod.IQR,
                )
            )

        self._log_detected(AnomalyMethod.IQR, len(values), anomalies)
        return anomalies

    def detect_mad(
        self, series: Sequence[float], threshold: float | None = None
    ) -> list[Anomaly]:
        """
        Flag points whose modified z-score exceeds ``threshold``.

        When more than half the points share the median value, MAD is zero and
        nothing is flagged.
        """
        if len(series) < 3:
            return []

        threshold = self.mad_threshold if threshold is None else threshold
        values = np.asarray(series, dtype=float)
        median = quantile(values, 0.5)
        mad = quantile(np.abs(values - median), 0.5)

        anomalies = []
        for index, value in enumerate(values):
            value = float(value)
            modified_z = 0.0 if mad == 0 else self.MAD_NORMALIZATION * (value - median) / mad
            score = abs(modified_z)
            if score <= threshold:
                continue

            if score > self.MAD_CRITICAL:
                severity = AnomalySeverity.CRITICAL
            elif score > self.MAD_WARNING:
                severity = AnomalySeverity.WARNING
            else:
                severity = AnomalySeverity.INFO

            anomalies.append(
                Anomaly(
                    index=index,
                    value=value,
                    expected=median,
                    deviation_score=score,
                    severity=severity,
                    method=AnomalyMethod.MAD,
                )
            )

        self._log_detected(AnomalyMethod.MAD, len(values), anomalies)
        return anomalies

    def _log_detected(self, method: AnomalyMethod, points: int, anomalies: list[Anomaly]) -> None:
        if anomalies:
            self.logger.debug(
                "anomalies_flagged",
                method=method.value,
                points=points,
                flagged=len(anomalies),
                indices=[a.index for a in anomalies],
            )
