"""Configuration package - Environment-driven application settings."""
