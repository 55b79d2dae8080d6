"""Core domain logic for dynamic-threshold metric monitoring.

This package contains the monitoring loop, its domain models and its
configuration, isolated from concrete sources, stores and notifiers.
"""
