"""Domain-specific errors for lifxctl."""


class LifxctlError(Exception):
    """Base error for lifxctl."""


class ConfigError(LifxctlError):
    """Base configuration error."""


class ConfigLoadError(ConfigError):
    """Raised when the user config file cannot be read."""


class ConfigValidationError(ConfigError):
    """Raised when configuration values do not conform to schema or semantics."""


class RegistryError(LifxctlError):
    """Base message registry error."""


class RegistryLoadError(RegistryError):
    """Raised when loading message descriptor sources fails."""


class RegistryValidationError(RegistryError):
    """Raised when a message descriptor file does not conform to schema or semantics."""


class InputError(LifxctlError):
    """Raised when user input is rejected before any network I/O."""


class UnknownMessageTypeError(InputError):
    """Raised when a message type name is not in the registry."""


class PayloadError(InputError):
    """Raised when a payload assignment cannot be applied."""


class ColorError(InputError):
    """Raised when a colour value is malformed or out of range."""


class WhitelistError(InputError):
    """Raised when a whitelist entry cannot be parsed."""


class CorrelationError(LifxctlError):
    """Raised when a response is requested for a message that has none."""


class FrameError(LifxctlError):
    """Raised when received bytes are not a valid protocol frame."""


class TransportError(LifxctlError):
    """Base transport error."""


class TransportConnectError(TransportError):
    """Raised when the UDP socket cannot be created or bound."""


class TransportSendError(TransportError):
    """Raised when sending a frame fails."""


class TransportReceiveError(TransportError):
    """Raised when receiving frames fails for reasons other than a timeout."""
