"""Batch Pacer - rate-limited async batch scheduling for quota-bound services."""

__version__ = "0.1.0"
