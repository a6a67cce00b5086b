class LeafOptimizerError(Exception):
    """Base class for errors raised after an optimization has started."""


class ConvergenceError(LeafOptimizerError, RuntimeError):
    """Optimization did not converge after all permitted refits."""


class InternalConsistencyError(LeafOptimizerError, AssertionError):
    """
    A result violates an invariant the solver guarantees, e.g. an initial
    value grid of the wrong size or a leaf energy budget that does not close.
    """
