"""Domain layer: models, ports and pure schedule logic."""
