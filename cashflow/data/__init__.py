"""Storage models, snapshot types and the repository."""
