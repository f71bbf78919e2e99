"""Rich rendering helpers for the Steward CLI."""
