"""Minimal models and resources exercised by the test suite."""
