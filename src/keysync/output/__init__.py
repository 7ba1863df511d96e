"""Reporters — rich terminal and JSON."""
