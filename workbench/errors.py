class WorkbenchError(Exception):
    """Base class for errors raised outside the executor and profiler."""


class QueueOrderError(WorkbenchError, ValueError):
    """A reorder request that is not a permutation of the queued action ids."""


class SessionNotFoundError(WorkbenchError, KeyError):
    pass


class UnhandledActionError(WorkbenchError, LookupError):
    """A CleaningAction kind with no registered handler."""
