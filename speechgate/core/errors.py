"""Error types raised by the capture pipeline and detector configuration."""


class SpeechGateError(Exception):
    """Base class for speechgate errors."""


class DeviceUnavailable(SpeechGateError):
    """No audio source is bound, or the source reports no input format."""


class FormatNegotiationFailed(SpeechGateError):
    """The source's native format cannot be converted to the canonical format."""


class InvalidParameters(SpeechGateError, ValueError):
    """Detection parameters, preset or algorithm name are out of range or unknown."""
