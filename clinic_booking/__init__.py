"""Patient appointment booking client."""

__version__ = "1.0.0"
