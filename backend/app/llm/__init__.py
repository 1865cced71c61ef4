"""Language model access: gateway, prompt templates and output parsers."""

from app.llm.gateway import LLMGateway, OllamaGateway, build_gateway, strip_reasoning
from app.llm.gateway_fake import GatewayFake

__all__ = [
    "GatewayFake",
    "LLMGateway",
    "OllamaGateway",
    "build_gateway",
    "strip_reasoning",
]
