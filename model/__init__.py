"""Project and overlay models."""
