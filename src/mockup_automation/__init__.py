"""
Product mockup automation package
- Drives a conversational image-generation web app through Playwright
  to turn a design into a notebook mockup.
"""

from .errors import (
    MockupAutomationError,
    ResolutionError,
    AuthTimeoutError,
    ComposerNotFoundError,
    PromptEntryError,
    GenerationTimeoutError,
    NoImageFoundError,
    ImageFetchError,
    LauncherBusyError,
)
from .models import ColorKey, GenerationRequest, GenerationResult, UploadSet

__all__ = [
    'MockupAutomationError',
    'ResolutionError',
    'AuthTimeoutError',
    'ComposerNotFoundError',
    'PromptEntryError',
    'GenerationTimeoutError',
    'NoImageFoundError',
    'ImageFetchError',
    'LauncherBusyError',
    'ColorKey',
    'GenerationRequest',
    'GenerationResult',
    'UploadSet',
]
__version__ = '1.0.0'
