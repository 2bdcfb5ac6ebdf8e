"""HTTP API for seva."""
