"""ESOP grant tracking and portfolio analytics service."""

__version__ = "0.1.0"
