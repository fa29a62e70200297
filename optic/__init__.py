"""Release automation for npm packages hosted on GitHub."""

__version__ = "0.1.0"
