"""Vote core services."""
