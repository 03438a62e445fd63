"""
Credentials Management Module

Provides in-memory storage and retrieval of external service credentials
for use in workflow nodes.
"""

from .service import get_active_credential, get_credential_by_id, save_credential

__all__ = ['get_active_credential', 'get_credential_by_id', 'save_credential']
