"""Boundary layer: vector index and external model services."""
