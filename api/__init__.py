# API module - Chat platform integration
# One messenger per platform; the gateway lives in api.gateway

from .messenger import Messenger, SlackMessenger, UserInfo, Conversation

__all__ = ["Messenger", "SlackMessenger", "UserInfo", "Conversation"]
