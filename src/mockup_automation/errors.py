"""Exceptions raised by the mockup automation pipeline."""


class MockupAutomationError(Exception):
    """Base class for every terminal run failure."""


class ResolutionError(MockupAutomationError):
    """A design reference, template or lookup identifier could not be resolved."""


class AuthTimeoutError(MockupAutomationError):
    """Manual login was not completed within the allowed time."""


class ComposerNotFoundError(MockupAutomationError):
    """None of the known composer shapes appeared on the page."""


class PromptEntryError(MockupAutomationError):
    """The prompt could not be pasted into the composer."""


class GenerationTimeoutError(MockupAutomationError):
    """No generated image appeared within the wait bound."""


class NoImageFoundError(MockupAutomationError):
    """The assistant response contains no image."""


class ImageFetchError(MockupAutomationError):
    """The generated image was located but its bytes could not be retrieved."""


class LauncherBusyError(MockupAutomationError):
    """A run is already active on the requested browser profile."""
