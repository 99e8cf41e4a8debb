"""Shared kernel: errors, value objects and collaborator ports."""
