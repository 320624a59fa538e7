"""Recommendation generation from view history."""
