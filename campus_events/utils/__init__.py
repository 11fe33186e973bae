"""Utility helpers for the Campus Events engine."""
