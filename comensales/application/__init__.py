"""Application layer: use cases orchestrating domain logic."""
