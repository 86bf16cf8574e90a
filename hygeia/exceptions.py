"""
Error taxonomy shared by services and API routes
"""


class HygeiaError(Exception):
    """Base class for all gateway errors"""


class AnalysisFailed(HygeiaError):
    """The assessor or a remote resolver errored or returned unusable data.

    Always retryable: the user re-runs the same action from scratch.
    """


class InvalidInput(HygeiaError):
    """A required field is missing or malformed; raised before any remote call"""


class FlowError(HygeiaError):
    """Base class for verify-flow state errors"""


class InvalidTransition(FlowError):
    """The requested action is not allowed in the current flow stage"""


class FlowBusy(FlowError):
    """An assessor or resolver call is already outstanding for this session"""
