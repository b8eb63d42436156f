"""clubnet - client-side resilience core for the motorcycle-club platform.

Coordinates unreliable network operations: connection-quality aware retry,
per-key request deduplication, an offline replay queue, and a staleness-aware
response cache.
"""

__version__ = "0.3.0"
