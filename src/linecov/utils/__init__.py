"""Utility helpers for linecov."""
