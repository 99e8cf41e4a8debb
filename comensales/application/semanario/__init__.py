"""Weekly default selection use cases."""
