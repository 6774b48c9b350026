"""Configuration: settings, credentials, project registry."""
