"""Error types raised at the nsbus API boundary.

Publishing or unsubscribing a namespace that does not exist is not an error:
those cases are no-ops reported through the diagnostic sink. The types below
cover arguments that break the call contract and unreadable input files.
"""


class NsBusError(Exception):
    """Base error for nsbus."""


class InvalidSubscriptionTarget(NsBusError, TypeError):
    """unsubscribe() received something that is not a handle, path, or list of those."""

    def __init__(self, target: object):
        self.target = target
        super().__init__(
            "Cannot unsubscribe {0!r}: expected a SubscriptionHandle, "
            "a namespace string, or a list of those.".format(target)
        )


class InvalidCallbackError(NsBusError, TypeError):
    """subscribe() received a callback that is not callable."""

    def __init__(self, namespace: str, callback: object):
        self.namespace = namespace
        self.callback = callback
        super().__init__(
            "Callback for namespace '{0}' must be callable, got {1}.".format(
                namespace,
                type(callback).__name__,
            )
        )


class BusConfigError(NsBusError, RuntimeError):
    """Raised when a configuration file is missing or cannot be parsed."""


class ScenarioError(NsBusError, ValueError):
    """Raised when a scenario file is malformed."""
