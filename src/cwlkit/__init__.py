"""cwlkit: decode CWL documents and resolve them into commands."""

__version__ = "0.1.0"
