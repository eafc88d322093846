"""
stripesync: keeps local document collections and Stripe resources in sync.
"""

from .version import __version__

__all__ = ["__version__"]
