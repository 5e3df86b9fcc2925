"""Endpoint adapters: fetch one batch and normalize it into a table."""
