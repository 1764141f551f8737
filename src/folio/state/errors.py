"""Errors raised while reading or writing a library document."""


class StateError(Exception):
    """The library document could not be read, validated, or written."""


class MissingStateError(StateError):
    """No library document exists at the requested path."""
