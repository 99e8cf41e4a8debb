"""Base weekly schedule, overrides and grid resolution."""
