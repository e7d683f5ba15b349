"""Data models for mozcpp."""
