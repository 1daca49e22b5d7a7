"""
Anomaly detection for business metric series.

Components:
    StatisticalDetector: Z-score, IQR and MAD outlier detectors
    EnsembleDetector: Two-of-three consensus over the statistical detectors
    RollingWindowDetector: Trailing-window z-score for dated series
"""

from bizmetrics.engine.detection.ensemble import EnsembleDetector, summarize
from bizmetrics.engine.detection.statistical import StatisticalDetector
from bizmetrics.engine.detection.temporal import RollingWindowDetector

__all__ = [
    "StatisticalDetector",
    "EnsembleDetector",
    "RollingWindowDetector",
    "summarize",
]
