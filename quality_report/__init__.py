"""Quality report aggregation: coverage, code metrics and SARIF diagnostics
fused into one symbol tree with thresholds and baseline deltas."""

__version__ = "0.3.0"
