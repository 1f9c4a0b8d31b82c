"""Shared dependencies for the API routes."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from claudish.config.settings import Settings
from claudish.core.logging import get_logger
from claudish.gateway import Gateway
from claudish.services.container import ServiceContainer


logger = get_logger(__name__)


def get_container(request: Request) -> ServiceContainer:
    container: ServiceContainer | None = getattr(
        request.app.state, "service_container", None
    )
    if container is None:
        logger.error("service_container_missing_on_app_state")
        raise HTTPException(status_code=503, detail="Service container not initialized")
    return container


def get_gateway(request: Request) -> Gateway:
    gateway: Gateway | None = getattr(request.app.state, "gateway", None)
    if gateway is None:
        gateway = Gateway(get_container(request))
        request.app.state.gateway = gateway
    return gateway


def get_settings(request: Request) -> Settings:
    return get_container(request).settings


ContainerDep = Annotated[ServiceContainer, Depends(get_container)]
GatewayDep = Annotated[Gateway, Depends(get_gateway)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
