"""Exception taxonomy for sparktop."""


class SparktopError(Exception):
    """Base class for sparktop errors."""


class TransientSampleFailure(SparktopError):
    """One tick's OS query failed.

    Absorbed by the snapshot ingestor, which reuses the previous snapshot.
    Never propagates past the control loop.
    """


class InvariantViolation(SparktopError, ValueError):
    """An engine input broke a documented invariant (caller bug).

    Examples: negative width passed to the compression engine, a tier ratio
    of zero, an EWMA weight outside (0, 1].
    """
