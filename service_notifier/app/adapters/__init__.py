"""
Outbound adapters for the notifier service.
"""

from .revalidation_client import RevalidationClient, RevalidationRequest, RevalidationTarget

__all__ = ["RevalidationClient", "RevalidationRequest", "RevalidationTarget"]
