"""Core infrastructure: paths, configuration, errors, theme and state."""
