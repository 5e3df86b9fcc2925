"""Upstream service access: HTTP helpers and NCBI E-utilities."""
