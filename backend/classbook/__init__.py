"""Classbook: recurring-meeting scheduling and section enrollment engine."""
