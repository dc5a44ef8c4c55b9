"""Process host for composable service plugins."""

__version__ = "0.1.0"
