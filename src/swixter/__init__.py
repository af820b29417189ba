"""swixter: switch AI coding tools between provider profiles."""

__version__ = "0.1.0"
