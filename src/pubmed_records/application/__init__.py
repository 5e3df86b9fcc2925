"""Retrieval workflow: endpoint registry, dispatch and assembly."""
