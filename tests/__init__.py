"""Test suite for the pytest-strata package.

This package contains unit and integration tests validating scenario
resolution, plugin discovery, execution semantics and the pytest
integration of YAML-based test scenarios.
"""
