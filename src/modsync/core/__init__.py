"""Core utilities for modsync: logging and error types."""
