"""Cross-cutting infrastructure: logging and exception types."""
