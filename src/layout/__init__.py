"""Layout engines."""
