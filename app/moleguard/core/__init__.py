"""Core engine: configuration, run driver, reporting and persistence."""
