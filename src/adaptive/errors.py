"""
Error taxonomy for the adaptive review engine.

Every error is raised at the call boundary before any state is touched,
so a rejected call leaves the caller's state exactly as it was.
"""


class AdaptiveEngineError(Exception):
    """Base class for all engine errors."""
    pass


class InvalidInputError(AdaptiveEngineError, ValueError):
    """Raised for out-of-range quality, negative latency or malformed dates."""
    pass


class AlgorithmMismatchError(AdaptiveEngineError):
    """Raised when a response kind does not match the state's algorithm."""

    def __init__(self, expected: str, received: str):
        self.expected = expected
        self.received = received
        super().__init__(
            f"Algorithm mismatch: state expects {expected} responses, got {received}"
        )


class UnknownAlgorithmVariant(AdaptiveEngineError):
    """Raised when a state is tagged with a variant no engine is configured for."""

    def __init__(self, variant: object):
        self.variant = variant
        super().__init__(f"Unknown algorithm variant: {variant!r}")
