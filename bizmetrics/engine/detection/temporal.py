"""
Rolling window anomaly detection for dated series.

Each point from ``window_size`` onward is scored against the mean and
population standard deviation of the ``window_size`` points before it, so
gradual level shifts are absorbed while sudden jumps stand out. Series
shorter than the window fall back to the whole-series ensemble.
"""

import math
from collections.abc import Sequence

import numpy as np
import structlog

from bizmetrics.engine.detection.ensemble import EnsembleDetector, anomaly_rate
from bizmetrics.models.analytics import Anomaly, AnomalyResult, TimeSeriesPoint
from bizmetrics.models.enums import AnomalyMethod, AnomalySeverity

logger = structlog.get_logger()


class RollingWindowDetector:
    """
    Trailing-window z-score detector.

    Attributes:
        threshold: Z-score above which a point is flagged (default: 2.5)
        warning_threshold: Z-score above which a flag is a warning
        critical_threshold: Z-score above which a flag is critical
        fallback: Ensemble used when the series is shorter than the window
    """

    def __init__(
        self,
        threshold: float = 2.5,
        warning_threshold: float = 3.0,
        critical_threshold: float = 4.0,
        fallback: EnsembleDetector | None = None,
    ):
        if not 0 < threshold <= warning_threshold <= critical_threshold:
            raise ValueError("Rolling thresholds must be positive and non-decreasing")
        self.threshold = threshold
        self.warning_threshold = warning_threshold
        self.critical_threshold = critical_threshold
        self.fallback = fallback or EnsembleDetector()
        self.logger = structlog.get_logger()

    def detect(self, points: Sequence[TimeSeriesPoint], window_size: int = 7) -> AnomalyResult:
        """
        Detect anomalies against a trailing window.

        Args:
            points: Dated observations ordered oldest to newest
            window_size: Trailing window length in points

        Returns:
            AnomalyResult; anomalies carry method ``zscore``

        Raises:
            ValueError: If window_size is not positive
        """
        if window_size < 1:
            raise ValueError("window_size must be positive")

        values = [float(p.value) for p in points]
        if len(values) < window_size:
            self.logger.debug(
                "rolling_window_fallback", points=len(values), window_size=window_size
            )
            return self.fallback.detect(values)

        anomalies = []
        for index in range(window_size, len(values)):
            window = np.asarray(values[index - window_size : index])
            mean = float(np.mean(window))
            std = float(np.std(window))
            value = values[index]

            if std == 0:
                if value == mean:
                    continue
                z = math.inf
            else:
                z = abs(value - mean) / std

            if z <= self.threshold:
                continue

            if z > self.critical_threshold:
                severity = AnomalySeverity.CRITICAL
            elif z > self.warning_threshold:
                severity = AnomalySeverity.WARNING
            else:
                severity = AnomalySeverity.INFO

            anomalies.append(
                Anomaly(
                    index=index,
                    value=value,
                    expected=mean,
                    deviation_score=z,
                    severity=severity,
                    method=AnomalyMethod.ZSCORE,
                )
            )

        self.logger.info(
            "rolling_detection_complete",
            points=len(values),
            window_size=window_size,
            anomalies=len(anomalies),
        )

        return AnomalyResult(
            anomalies=anomalies,
            total_points=len(values),
            anomaly_rate=anomaly_rate(len(anomalies), len(values)),
            summary=f"Rolling window anomaly detection ({window_size}-day window)",
        )
