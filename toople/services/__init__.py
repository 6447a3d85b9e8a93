"""Toople services."""
