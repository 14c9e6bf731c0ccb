"""
Background services for the ledtech trust core
"""

from .maintenance import SecurityMaintenance

__all__ = ["SecurityMaintenance"]
