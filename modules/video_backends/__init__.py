"""Concrete VideoBackend implementations."""
