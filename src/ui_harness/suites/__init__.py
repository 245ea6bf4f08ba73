"""Scenario suites shipped with the harness."""
