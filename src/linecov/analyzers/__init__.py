"""Coverage analyzers."""

from linecov.analyzers.coverage import aggregate, find_gaps, summarize_file

__all__ = ["aggregate", "find_gaps", "summarize_file"]
