"""Logging and Prometheus metrics for fluxscope."""
