"""
This module re-exports the IntegrationToken model from the database package for use in connector-related code.
"""

from database.models import IntegrationToken  # noqa: F401

__all__ = ["IntegrationToken"]
