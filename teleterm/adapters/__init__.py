"""Rendering adapters for concrete terminals."""
