"""Trust Pass employee verification service."""
