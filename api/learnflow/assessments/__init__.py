"""Assessment scoring engine."""
