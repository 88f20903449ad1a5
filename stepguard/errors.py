class GuardError(Exception):
    pass

class ParseError(GuardError):
    pass

class TypeResolutionError(GuardError):
    """Raised when an exception type name cannot be resolved."""
    pass

class SkipStep(GuardError):
    """Raised when a step must not run. Neither a pass nor a failure."""
    pass

class GuardAssertionError(GuardError, AssertionError):
    """Raised when a guard turns a step outcome into a failure."""
    pass

class GuardTimeoutError(GuardAssertionError):
    """Raised when a step did not succeed before its deadline."""

    def __init__(self, message: str, last_error: BaseException = None):
        super().__init__(message)
        self.last_error = last_error
