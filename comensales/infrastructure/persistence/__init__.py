"""Document store adapters and repositories."""
