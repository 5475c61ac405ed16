"""Pytest plugin and runtime for YAML-based test scenarios.

The `pytest_strata` package runs declarative test scenarios whose test
units are provided by plugins, and integrates them with pytest.

Key features:
- YAML scenarios collected as pytest test items;
- plugin-provided test unit shapes resolved by structural matching;
- fixtures started around a scenario and stopped in reverse order;
- data handed from one test unit to the next, per-unit waits and
  timeouts, and aggregated runtime errors.
"""
