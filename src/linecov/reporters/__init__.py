"""Coverage reporters: terminal tables, LCOV traces, Cobertura XML, HTML."""
