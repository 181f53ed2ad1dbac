"""Diagnostic helpers."""
