"""Utility functions and classes for pgfusion."""

from pgfusion.utils import logging, module_loader, serializers

__all__ = ("logging", "module_loader", "serializers")
