"""
Monitoring Package

structlog configuration and Prometheus metrics for the catalog gateway.
"""
