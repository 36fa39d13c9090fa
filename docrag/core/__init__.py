"""Retrieval core: normalization, chunking, ranking, and prompt assembly."""
