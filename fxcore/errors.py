"""
Error kinds raised by the curve bootstrapper and the option pricer.

Every error carries the offending quote or parameter so callers (UI,
chat layer, reports) can build their own messages.
"""


class CurveError(Exception):
    """Base class for bootstrapping failures."""


class InsufficientDataError(CurveError, ValueError):
    """Fewer than two usable calibration points."""

    def __init__(self, n_usable, message=None):
        self.n_usable = n_usable
        super().__init__(message or f"need at least 2 usable quotes, got {n_usable}")


class NonConvergenceError(CurveError, RuntimeError):
    """An optimisation-based method ran out of iterations."""

    def __init__(self, method, iterations, message=""):
        self.method = method
        self.iterations = iterations
        super().__init__(f"{method} did not converge after {iterations} iterations"
                         + (f": {message}" if message else ""))


class NegativeForwardError(CurveError, ValueError):
    """A positive-forward method met a violation it cannot repair."""

    def __init__(self, quote, message):
        self.quote = quote
        super().__init__(f"{message} (quote: {quote})")


class PricingError(Exception):
    """Base class for option pricing input errors."""


class InvalidOptionParameters(PricingError, ValueError):
    """Non-positive spot, strike, maturity or volatility, or unusable rates."""

    def __init__(self, parameter, value, message=None):
        self.parameter = parameter
        self.value = value
        super().__init__(message or f"invalid {parameter}: {value!r}")


class InvalidBarrierConfiguration(PricingError, ValueError):
    """Missing barrier, bad ordering, or barrier on the wrong side of spot."""

    def __init__(self, parameter, value, message):
        self.parameter = parameter
        self.value = value
        super().__init__(f"{message} ({parameter}={value!r})")
