"""Application layer: pipeline orchestration and file-based use cases."""
