class ChannelAdvisorError(Exception):
    """Base class for errors raised by the channel advisor."""


class ChannelUniverseError(ChannelAdvisorError):
    """Scored channels no longer match the fixed 11..26 Zigbee channel set.

    The channel set is a constant, so this is a configuration bug rather than
    a data problem. The pipeline keeps its last good state when it sees one.
    """


class PipelineClosedError(ChannelAdvisorError):
    """An update was submitted after the pipeline was closed."""
