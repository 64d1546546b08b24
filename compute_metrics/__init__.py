"""Compute Metrics - per-worker compute unit and query duration metrics"""

__version__ = "0.1.0"
