"""
Ensemble Anomaly Detection.

Fuses the three statistical detectors into a consensus result:

Fusion Rules:
    - Every detector runs over the full series
    - Detections are grouped by series index
    - An index is kept only when at least two detectors flag it
    - The kept record is the most severe detection for that index
      (ties resolved zscore, then iqr, then mad)
    - Anomalies are reported in ascending index order

A single detector can also be requested by name, in which case its own
detections are returned unfiltered.

Summary Policy (rate = anomalies / points * 100):
    - fewer than 3 points: insufficient data
    - no anomalies: nothing significant
    - rate < 5%: minor anomalies
    - rate < 15%: investigate unusual patterns
    - otherwise: high anomaly rate
"""

from collections.abc import Sequence

import structlog

from bizmetrics.engine.detection.statistical import StatisticalDetector
from bizmetrics.models.analytics import Anomaly, AnomalyResult
from bizmetrics.models.enums import DetectionMode

logger = structlog.get_logger()

MIN_CONSENSUS_VOTES = 2

INSUFFICIENT_DATA_SUMMARY = "Insufficient data for anomaly detection"
NO_ANOMALIES_SUMMARY = "No significant anomalies detected"


def anomaly_rate(anomaly_count: int, total_points: int) -> float:
    """Percentage of points flagged as anomalous."""
    if total_points == 0:
        return 0.0
    return anomaly_count / total_points * 100


def summarize(anomaly_count: int, total_points: int) -> str:
    """
    Human-readable summary for a detection run.

    Example:
        >>> summarize(1, 50)
        '1 minor anomalies detected (2.0% of data)'
    """
    if total_points < 3:
        return INSUFFICIENT_DATA_SUMMARY
    if anomaly_count == 0:
        return NO_ANOMALIES_SUMMARY

    rate = anomaly_rate(anomaly_count, total_points)
    if rate < 5:
        return f"{anomaly_count} minor anomalies detected ({rate:.1f}% of data)"
    if rate < 15:
        return f"{anomaly_count} anomalies detected - investigate unusual patterns"
    return (
        f"High anomaly rate ({rate:.1f}%) - data quality issues or significant business changes"
    )


class EnsembleDetector:
    """
    Consensus anomaly detector over z-score, IQR and MAD.

    Attributes:
        statistical_detector: Detector providing the three methods
        min_votes: Detectors that must agree for the ensemble to flag a point

    Example:
        >>> result = EnsembleDetector().detect([10, 11, 9, 10, 200, 10, 11, 9])
        >>> [(a.index, a.severity.value) for a in result.anomalies]
        [(4, 'critical')]
    """

    def __init__(
        self,
        statistical_detector: StatisticalDetector | None = None,
        min_votes: int = MIN_CONSENSUS_VOTES,
    ):
        if min_votes < 1:
            raise ValueError("min_votes must be at least 1")
        self.statistical_detector = statistical_detector or StatisticalDetector()
        self.min_votes = min_votes
        self.logger = structlog.get_logger()

    def detect(
        self, series: Sequence[float], method: str | DetectionMode = DetectionMode.ENSEMBLE
    ) -> AnomalyResult:
        """
        Detect anomalies in a series.

        Args:
            series: Numeric observations ordered oldest to newest
            method: zscore, iqr, mad or ensemble (default)

        Returns:
            AnomalyResult with anomalies, rate and summary

        Raises:
            ValueError: If the method name is not recognised
        """
        mode = DetectionMode(method)
        total = len(series)

        if total < 3:
            return AnomalyResult(
                anomalies=[],
                total_points=total,
                anomaly_rate=0.0,
                summary=INSUFFICIENT_DATA_SUMMARY,
            )

        if mode == DetectionMode.ZSCORE:
            anomalies = self.statistical_detector.detect_zscore(series)
        elif mode == DetectionMode.IQR:
            anomalies = self.statistical_detector.detect_iqr(series)
        elif mode == DetectionMode.MAD:
            anomalies = self.statistical_detector.detect_mad(series)
        else:
            anomalies = self._consensus(series)

        result = AnomalyResult(
            anomalies=anomalies,
            total_points=total,
            anomaly_rate=anomaly_rate(len(anomalies), total),
            summary=summarize(len(anomalies), total),
        )

        self.logger.info(
            "anomaly_detection_complete",
            method=mode.value,
            points=total,
            anomalies=len(anomalies),
            anomaly_rate=round(result.anomaly_rate, 2),
        )
        return result

    def _consensus(self, series: Sequence[float]) -> list[Anomaly]:
        # Detector order doubles as the severity tie-break order
        detections = (
            self.statistical_detector.detect_zscore(series)
            + self.statistical_detector.detect_iqr(series)
            + self.statistical_detector.detect_mad(series)
        )

        by_index: dict[int, list[Anomaly]] = {}
        for anomaly in detections:
            by_index.setdefault(anomaly.index, []).append(anomaly)

        consensus = []
        for index in sorted(by_index):
            votes = by_index[index]
            if len(votes) < self.min_votes:
                continue
            # max() keeps the first of equally severe votes
            consensus.append(max(votes, key=lambda a: a.severity.rank))

        self.logger.debug(
            "ensemble_votes",
            candidates=len(by_index),
            consensus=len(consensus),
        )
        return consensus
