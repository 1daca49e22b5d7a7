"""bizmetrics - business metrics reporting and analytics engine."""

__version__ = "1.0.0"
