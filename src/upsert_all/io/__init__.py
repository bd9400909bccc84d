"""I/O layer: database-facing loaders."""
