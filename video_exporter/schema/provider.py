"""Pydantic models for provider, container and fetch endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from video_exporter.services.canonical import ProviderContainer
from video_exporter.services.filtering import DateWindow
from video_exporter.services.providers.base import Credentials, Provider


class CredentialsPayload(BaseModel):
    """Secrets for one provider; which fields are required depends on the provider."""

    token: str | None = Field(None, description="Bearer token (Vimeo, Wistia)")
    api_key: str | None = Field(None, description="Access key (Bunny) or client id (Zoom)")
    api_secret: str | None = Field(None, description="API secret (VdoCipher) or client secret (Zoom)")
    account_id: str | None = Field(None, description="Zoom account id for the account-credentials grant")
    library_id: str | None = Field(None, description="Bunny Stream library id")
    storage_zone: str | None = Field(None, description="Bunny Storage zone name")
    cdn_hostname: str | None = Field(None, description="Bunny pull-zone or Stream CDN hostname")
    region: str | None = Field(None, description="Bunny Storage region code")

    def to_credentials(self) -> Credentials:
        return Credentials(**self.model_dump())


class ProviderInfo(BaseModel):
    provider: Provider
    required_fields: list[str]
    supports_date_filter: bool


class ContainersRequest(BaseModel):
    provider: Provider
    credentials: CredentialsPayload


class ContainerResponse(BaseModel):
    uri: str
    name: str
    description: str | None = None

    @classmethod
    def from_container(cls, container: ProviderContainer) -> ContainerResponse:
        return cls(uri=container.uri, name=container.name, description=container.description)


class ContainerListResponse(BaseModel):
    provider: Provider
    containers: list[ContainerResponse]


class FetchVideosRequest(BaseModel):
    """Start a fresh aggregation; replaces whatever the session holds."""

    provider: Provider
    credentials: CredentialsPayload
    container_uri: str | None = None
    date_window: DateWindow = DateWindow.ALL


class DateFilterRequest(BaseModel):
    date_window: DateWindow
