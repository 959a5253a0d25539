"""Collectors for raw per-line execution counts."""
