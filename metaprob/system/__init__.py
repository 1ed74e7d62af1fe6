"""Error types and shared models."""
