"""Infrastructure layer: table metadata and SQL generation."""
