"""Configuration package for the ESOP advisor service."""

from .settings import EsopSettings, get_settings

__all__ = ["EsopSettings", "get_settings"]
