"""Scheduling and enrollment services."""
