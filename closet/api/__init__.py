"""AI gateway client."""

from .aitunnel_client import AITunnelClient, MessageParts, extract_message_parts

__all__ = ["AITunnelClient", "MessageParts", "extract_message_parts"]
