"""Channel operations that outlive a single request."""

from .poller import ChannelClearOperation, channel_empty_params, check_channel_empty

__all__ = ["ChannelClearOperation", "check_channel_empty", "channel_empty_params"]
