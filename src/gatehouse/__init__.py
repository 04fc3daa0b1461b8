"""Gatehouse: abuse mitigation for login and form endpoints."""

__version__ = "0.1.0"
