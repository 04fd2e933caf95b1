"""Shared helpers: URL normalisation, error taxonomy, retries, coercion."""
