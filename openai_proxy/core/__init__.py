"""Configuration and shared wire types."""
