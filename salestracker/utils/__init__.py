"""Utility modules for Sales Tracker."""

from .export import Exporter

__all__ = ["Exporter"]
