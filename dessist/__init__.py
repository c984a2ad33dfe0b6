"""dessist — convert SSIS packages into Python programs."""

__version__ = "0.1.0"
