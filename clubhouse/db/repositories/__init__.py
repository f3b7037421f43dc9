"""
Per-domain repository modules for shared database access.

Domain services query their own tables directly; these modules hold the
lookups used across services and by the authentication layer.
"""
from . import audits, profiles

__all__ = ["audits", "profiles"]
