"""Incremental crawler for job and internship listing sites."""

__version__ = "0.1.0"
