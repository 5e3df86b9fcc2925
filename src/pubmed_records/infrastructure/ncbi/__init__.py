"""NCBI E-utilities and PMC services."""
