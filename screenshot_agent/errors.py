from __future__ import annotations


class ScreenshotAgentError(Exception):
    """Base class for errors raised by the screenshot pipeline."""


class ValidationError(ScreenshotAgentError):
    """The request is missing a target URL or the URL is not absolute."""


class RenderError(ScreenshotAgentError):
    """The browser could not produce an image.

    The message is shown to API clients, so keep it short and free of
    browser internals; chain the original exception instead.
    """


class UploadError(ScreenshotAgentError):
    """A storage backend failed to accept the artifact."""


class BackendNotImplementedError(UploadError):
    def __init__(self, name: str):
        super().__init__(f"{name} storage service is not implemented yet")
        self.name = name


class BackendUnspecifiedError(UploadError):
    def __init__(self, name: str | None = None):
        super().__init__("Please specify a storage service")
        self.name = name
