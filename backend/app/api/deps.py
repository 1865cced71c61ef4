"""Shared route dependencies."""

from fastapi import Request

from app.llm.gateway import LLMGateway, build_gateway


def get_gateway(request: Request) -> LLMGateway:
    """Dependency that provides the LLM gateway.

    Returns the gateway created at startup, or builds one from settings when the
    app was started without its lifespan (GatewayFake when USE_FAKE_LLM is set).
    Override this dependency in tests via app.dependency_overrides.
    """
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        from app.core.config import get_settings

        gateway = build_gateway(get_settings())
        request.app.state.gateway = gateway
    return gateway
