"""Denormalization sync package."""

from smartspend.sync.profile import ProfileSyncService

__all__ = ["ProfileSyncService"]
