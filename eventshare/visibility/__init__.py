"""Ownership, sharing and visibility-projection engine."""
