class UnrecoverableError(ValueError):
    """Base class for errors that abort the whole trigger run."""

    pass


class UnauthorizedUserError(UnrecoverableError):
    """Raised when the triggering user may not start pipelines."""

    pass


class PullRequestLookupError(UnrecoverableError):
    """Raised when the pull request or its changed files cannot be fetched."""

    pass


class TriggerError(Exception):
    """Base class for errors that only skip the current trigger."""

    pass


class PipelineNotFoundError(TriggerError):
    """Raised when no namespace in the search order holds the pipeline."""

    pass


class PipelineNotInRequestedNamespaceError(PipelineNotFoundError):
    """Raised when the pipeline is missing from the namespace the user asked for."""

    pass


class ServiceAccountNotFoundError(TriggerError):
    """Raised when neither the named nor the default service account exists."""

    pass


class UnknownArgumentsError(TriggerError):
    """Raised when a trigger passes arguments the pipeline does not declare."""

    def __init__(self, unknown_args: list[str]):
        super().__init__(f"Unknown arguments: {', '.join(unknown_args)}")
        self.unknown_args = unknown_args
