"""Data access: document registry and result cache."""
