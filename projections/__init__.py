"""Financial projections backend."""
