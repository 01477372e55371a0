"""Exceptions raised by folder reconciler."""


class ReconcileError(Exception):
    """Base class for all reconciler errors."""


class InvalidArgumentError(ReconcileError, ValueError):
    """A path or option handed to an engine cannot be used."""


class DestinationNotDirectoryError(InvalidArgumentError):
    """The destination exists but is not a directory."""

    def __init__(self, destination: str):
        super().__init__(f"Destination exists and is not a directory: {destination}")
        self.destination = destination


class UnknownPresetError(InvalidArgumentError):
    """A preset or action name could not be parsed."""


class ExhaustedRetriesError(ReconcileError):
    """
    Too many near-duplicates occupy the candidate names for a file.

    The partially filled report of the run that hit the limit is attached
    as ``report`` once the engine has finished the current stage.
    """

    def __init__(self, source: str, destination: str, attempts: int):
        super().__init__(
            f"Too many duplicate files: no free name for {source} "
            f"in {destination} after {attempts} attempts"
        )
        self.source = source
        self.destination = destination
        self.attempts = attempts
        self.report = None
