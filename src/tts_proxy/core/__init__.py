"""
Core Infrastructure for tts-proxy.

This package provides foundational components:
    - config.py: Configuration loading and validation
    - logging/: Structured logging with numeric levels
    - errors.py: Error taxonomy shared by the upstream client and the service
    - metrics.py: Prometheus metrics collection
"""
