"""Version information for magic_cross."""

__version__ = "1.0.0"
