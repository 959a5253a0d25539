"""linecov: line-coverage summaries, LCOV traces and Cobertura reports."""

__version__ = "0.1.0"
