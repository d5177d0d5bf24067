"""TTFB monitor package initialization.

Exports for testing and module access.
"""

from ttfb_monitor import lib, models

__all__ = ['lib', 'models']
