"""Core infrastructure: configuration, logging, results, and security."""
