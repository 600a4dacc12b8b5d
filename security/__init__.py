# Security module - Channel authorization for catalog tools
# Default deny: a channel must be listed (or be the admin channel)

from .permissions import AuthorizationResolver, ChannelDirectory, ALL_CHANNELS

__all__ = ["AuthorizationResolver", "ChannelDirectory", "ALL_CHANNELS"]
