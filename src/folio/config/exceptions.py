"""Configuration errors."""


class ConfigError(Exception):
    """Raised for unreadable config files and for values that fail validation."""
