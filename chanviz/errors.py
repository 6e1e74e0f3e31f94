class ChannelMapError(ValueError):
    """Base class for all channel-map errors."""


class DataIntegrityError(ChannelMapError):
    """Segment table ranges are missing, malformed or overlapping."""


class InvalidRangeError(ChannelMapError):
    """A loop range ends before it starts."""


class PositionParseError(ChannelMapError):
    """A mutation sequence label carries no residue number."""


class MutationEntryError(ChannelMapError):
    """A manually entered mutation is out of range or duplicates a position."""
