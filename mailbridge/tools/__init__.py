from .base import ActionGateway, Completions, GatewayAction, GatewayIdentity, ToolDescriptor
from .factory import ToolDescriptorFactory

__all__ = [
    "ActionGateway",
    "Completions",
    "GatewayAction",
    "GatewayIdentity",
    "ToolDescriptor",
    "ToolDescriptorFactory",
]
