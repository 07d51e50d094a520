"""Integration tests wiring services to a real SQLite store."""
