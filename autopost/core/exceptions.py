"""
Error taxonomy for a pipeline run.

Only SourceFetchError is recoverable: the feed and history fetchers absorb it
and carry on with an empty result. Everything else ends the run.
"""

from __future__ import annotations


class AutopostError(Exception):
    """Base class for all pipeline failures."""


class ConfigurationError(AutopostError):
    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(f"Missing required environment variables: {', '.join(missing)}")


class SourceFetchError(AutopostError):
    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"{source}: {reason}")


class NoNewsAvailable(AutopostError):
    def __init__(self) -> None:
        super().__init__("Every news source came back empty; nothing to write about")


class GenerationFormatError(AutopostError):
    def __init__(self, message: str, raw_preview: str = "") -> None:
        self.raw_preview = raw_preview
        super().__init__(f"{message}: {raw_preview}" if raw_preview else message)


class PublishError(AutopostError):
    def __init__(self, status_code: int | None, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Content store write failed (HTTP {status_code}): {body}")
