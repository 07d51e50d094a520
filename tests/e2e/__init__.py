"""End-to-end pipeline runs in mock mode."""
