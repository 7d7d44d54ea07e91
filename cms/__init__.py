"""GitHub-backed commit endpoint for the bleach.fish admin page."""
