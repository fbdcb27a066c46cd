"""Configuration loading (YAML file, .env, environment)."""
