"""Utility helpers for streambot."""
