"""Exception types raised by the controller client and the session layer."""


class ControllerError(Exception):
    """A call to the UniFi controller failed or returned an unusable response."""


class ControllerAuthError(ControllerError):
    """The controller rejected the supplied credentials or session cookie."""


class ControllerConfigurationError(Exception):
    """The requested controller cannot be resolved from the configured registry."""
