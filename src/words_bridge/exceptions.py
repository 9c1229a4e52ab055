"""
Exception types raised by the bridge.

Process-level failures (missing tool, non-zero exit, timeout) are never raised;
they come back as data on CommandOutcome/BridgeResponse. These exceptions are
for malformed requests and bad configuration only.
"""


class BridgeError(Exception):
    """Base class for bridge errors."""
    pass


class InvalidRequestError(BridgeError, ValueError):
    """Raised when a request cannot be turned into a tool invocation."""
    pass


class UnsupportedFormatError(InvalidRequestError):
    """Raised in strict mode for an export format the tool does not know."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Unsupported export format: {value!r}")


class ConfigError(BridgeError, ValueError):
    """Raised when the bridge configuration is invalid."""
    pass
