"""Integrations with external tool servers."""
