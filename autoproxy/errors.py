from __future__ import annotations


class AutoproxyError(Exception):
    """Base class for errors that end the reconciliation loop."""


class InventoryError(AutoproxyError):
    pass


class SyncError(AutoproxyError):
    pass


class TemplateLoadError(AutoproxyError):
    pass


class ReloadError(AutoproxyError):
    pass
