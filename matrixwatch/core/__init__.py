"""Core engine: domain models, indicators, scoring and the decision matrix."""
