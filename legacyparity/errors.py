"""Exceptions raised by the modernization-validation pipeline"""

from typing import Optional


class PipelineError(Exception):
    """Base class for every failure the pipeline knows how to report"""

    stage = "pipeline"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class StorageAccessError(PipelineError):
    """Raised when an object-store read or write fails"""

    stage = "storage"


class FixtureError(PipelineError):
    """Raised when the fixture record is missing or malformed"""

    stage = "fixture"


class TranslationError(PipelineError):
    """Raised when the translation service call or its response is unusable"""

    stage = "translate"

    def __init__(self, message: str, status_code: Optional[int] = None,
                 timeout: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.timeout = timeout


class CredentialsError(TranslationError):
    """Raised when API credentials are missing"""
    pass


class BuildError(PipelineError):
    """Raised when a program variant fails to compile"""

    stage = "build"

    def __init__(self, message: str, build_result=None):
        super().__init__(message)
        self.build_result = build_result


class ExecutionError(PipelineError):
    """Raised when a compiled variant exits non-zero or cannot be run"""

    stage = "execute"

    def __init__(self, message: str, variant: str = "", exit_code: Optional[int] = None,
                 stderr: str = "", timeout: bool = False):
        super().__init__(message)
        self.variant = variant
        self.exit_code = exit_code
        self.stderr = stderr
        self.timeout = timeout


class ArchivalError(PipelineError):
    """Raised when an artifact cannot be written to the archive"""

    stage = "archive"
