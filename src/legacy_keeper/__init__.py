"""Organise personal health and legacy records into views and lifecycles."""

__version__ = "0.1.0"
