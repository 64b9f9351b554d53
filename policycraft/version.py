"""Version information for PolicyCraft."""

__version__ = "0.3.0"
