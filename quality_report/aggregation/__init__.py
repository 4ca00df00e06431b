"""Aggregation engine: merge, locate, reconcile, evaluate."""

from quality_report.aggregation.service import AggregationInput, MetricsAggregationService

__all__ = ["AggregationInput", "MetricsAggregationService"]
