"""Exceptions raised by the telemetry sheet logger."""


class ConfigError(Exception):
    """Raised when a required environment variable is missing or invalid."""

    def __init__(self, variable, reason="not set"):
        self.variable = variable
        self.reason = reason
        super().__init__(f"Configuration error for '{variable}': {reason}")


class MetricFetchError(Exception):
    """Raised when the space pledged value cannot be obtained for a network.

    Covers JSON-RPC error payloads, empty storage and API responses that do
    not carry a ``spacePledged`` field. Transport errors from ``requests`` are
    not wrapped.
    """

    def __init__(self, network, reason):
        self.network = network
        self.reason = reason
        super().__init__(f"Failed to fetch space pledged for {network}: {reason}")
