"""Assignment review workflow."""
