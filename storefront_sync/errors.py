"""
Exception taxonomy for the extraction and sync pipeline.

Only SessionLaunchFailure aborts a run. Everything else is caught at the
product-loop boundary and turned into a counted outcome or a degraded
(partial) result.
"""


class StorefrontSyncError(Exception):
    """Base class for all pipeline errors."""


class ClassificationAmbiguous(StorefrontSyncError):
    """No platform signature matched; the generic strategy is used."""


class NavigationTimeout(StorefrontSyncError):
    """Page navigation or network-settle wait exceeded its timeout."""


class SelectorWaitTimeout(StorefrontSyncError):
    """An explicit selector wait exceeded its timeout."""


class ParseError(StorefrontSyncError):
    """A field or embedded data block could not be parsed."""


class EnrichmentFailure(StorefrontSyncError):
    """A detail page could not be used to enrich a listing product."""


class StoreWriteError(StorefrontSyncError):
    """The catalog store rejected a create or update."""


class SessionLaunchFailure(StorefrontSyncError):
    """The browser session could not be established (run-fatal)."""


class SessionError(StorefrontSyncError):
    """A browser session operation failed for a reason other than a timeout."""


class VendorNotFound(StorefrontSyncError):
    """The vendor does not exist or has sync disabled."""


class SyncAlreadyRunning(StorefrontSyncError):
    """A sync for this vendor is already in progress."""


class InvalidStateTransition(StorefrontSyncError):
    """A SyncRun was asked to make a transition its state machine forbids."""
