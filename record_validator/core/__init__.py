"""Core infrastructure: configuration, logging, errors, middleware."""
