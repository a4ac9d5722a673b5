"""Tiny Content Cache service package."""
