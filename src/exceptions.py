"""Custom exceptions"""

class BuildCodecError(Exception):
    """Base class for everything the build codecs raise."""

class BuildDecodeError(BuildCodecError):
    """Raised when a build link cannot be decoded. Never partially applied."""

class TruncatedInputError(BuildDecodeError):
    """Raised when a varint or length-prefixed string runs past the end of the payload."""

class UnknownVersionError(BuildDecodeError):
    """Raised when a payload doesn't match any known format generation."""

class TransportDecodeError(BuildDecodeError):
    """Raised when the base64 or inflate step fails."""

class FieldOutOfRangeError(BuildCodecError, ValueError):
    """Raised at encode time when a field can't be packed into its wire representation."""

class ExternalLookupError(BuildCodecError):
    """Raised when trait tier ordering can't be resolved for a specialization."""
