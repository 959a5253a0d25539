"""Data models for linecov."""
