"""
Errors raised while talking to museum sources.
None of these leave the aggregator: adapters and the fan-in step turn them
into empty results.
"""


class ArtSourceError(Exception):
    """Base class for failures tied to a single source."""

    def __init__(self, source, message=""):
        self.source = source
        super().__init__(f"{source}: {message}" if message else source)


class SourceUnavailable(ArtSourceError):
    """Network failure, non-2xx status or a payload we could not read."""


class MissingCredential(ArtSourceError):
    """The source needs an API key that is not configured."""

    def __init__(self, source, setting):
        self.setting = setting
        super().__init__(source, f"{setting} not set")


class SourceTimeout(ArtSourceError):
    """The source did not answer within its deadline."""

    def __init__(self, source, deadline_ms):
        self.deadline_ms = deadline_ms
        super().__init__(source, f"no response within {deadline_ms}ms")
