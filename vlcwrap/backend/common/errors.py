from __future__ import annotations



class VlcWrapError(Exception):
    """Base for all vlcwrap exceptions."""


class ConfigError(VlcWrapError):
    """Configuration related issues."""


class TaskError(VlcWrapError):
    """Deferred task scheduling/execution issues."""


class NativeLibraryError(VlcWrapError):
    """libvlc could not be located, loaded or bound."""


class FeatureUnavailable(NativeLibraryError):
    """The loaded libvlc build does not export a required symbol."""


class HandleError(VlcWrapError):
    """Native handle ownership issues."""


class ConstructionFailure(HandleError):
    """A native create call returned a null handle."""


class EventManagerError(VlcWrapError):
    """Event subscription bookkeeping issues."""


class AttachFailure(EventManagerError):
    """libvlc refused to attach the event trampoline."""
