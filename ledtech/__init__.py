"""
ledtech - trust and access-control core for the ledtech B2B site
"""

__version__ = "0.1.0"
