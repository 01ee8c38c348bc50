"""General utility functions for the Book AI system."""

from .logging import setup_logging

__all__ = ["setup_logging"]
