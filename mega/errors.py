from pathlib import Path


class MegaError(Exception):
    """Base class for every error raised by Mega."""


class SpeechEngineError(MegaError):
    """The STT engine failed to decode an utterance."""


class OnsetNotFoundError(MegaError):
    """No speech onset in a buffer that was supposed to contain speech.

    Only reachable through a caller bug, so it is never handled locally.
    """


class CommandResolutionError(MegaError):
    """A transcript could not be turned into a command. Recoverable."""


class CommandNotFoundError(CommandResolutionError):
    pass


class MalformedCommandTreeError(CommandResolutionError):
    def __init__(self, path: Path):
        super().__init__(f"malformed command tree entry: {path}")
        self.path = path


class ScriptExecutionError(MegaError):
    def __init__(self, path: Path, reason: str):
        super().__init__(f"command script {path} failed: {reason}")
        self.path = path


class ChannelClosedError(MegaError):
    """A worker on the other end of a queue is gone."""
