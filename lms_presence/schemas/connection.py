"""Schemas for tracked client connections and the network API payloads."""

from datetime import datetime
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_serializer,
    model_validator,
)


class Identity(BaseModel):
    """
    Snapshot of the authenticated user behind a connection.

    Taken from the session token at registration time and never refreshed
    independently of the owning user.
    """

    model_config = ConfigDict(frozen=True)

    user_id: int
    name: str | None = None
    email: str | None = None
    role: str | None = None


class ConnectionData(BaseModel):
    """Caller-supplied part of a connection record."""

    model_config = ConfigDict(frozen=True)

    identity: Identity | None = None
    ip: str
    network_info: dict[str, Any] = Field(default_factory=dict)
    user_agent: str = ""


class ConnectionRecord(ConnectionData):
    """
    One tracked client session.

    ``connected_at`` is set the first time the session id is seen and
    ``last_activity`` on every registration.
    """

    session_id: str
    connected_at: datetime
    last_activity: datetime

    @model_validator(mode="after")
    def _check_timestamps(self) -> "ConnectionRecord":
        if self.connected_at > self.last_activity:
            raise ValueError("connected_at must not be after last_activity")
        return self

    @property
    def is_anonymous(self) -> bool:
        return self.identity is None

    @property
    def user_id(self) -> int | None:
        return self.identity.user_id if self.identity else None

    @property
    def user_name(self) -> str | None:
        return self.identity.name if self.identity else None

    @property
    def user_email(self) -> str | None:
        return self.identity.email if self.identity else None

    @property
    def user_role(self) -> str | None:
        return self.identity.role if self.identity else None


class RegisterConnectionInput(BaseModel):
    """Body of ``POST /api/network/register``."""

    session_id: str | None = Field(default=None, alias="sessionId")
    network_info: dict[str, Any] | None = Field(
        default=None, alias="networkInfo"
    )


class ConnectionView(BaseModel):
    """Flattened connection row rendered on the admin dashboard."""

    id: str
    session_id: str
    user_id: int | None
    ip_address: str
    isp: Any = None
    organization: Any = None
    country: Any = None
    region: Any = None
    city: Any = None
    timezone: Any = None
    is_vpn: int = 0
    is_proxy: int = 0
    is_tor: int = 0
    latitude: Any = None
    longitude: Any = None
    user_agent: str
    connected_at: str
    last_activity: str
    user_name: str | None
    user_email: str | None
    user_role: str | None

    @classmethod
    def from_record(cls, record: ConnectionRecord) -> "ConnectionView":
        """Flatten a record, pulling the well-known keys out of network_info."""
        info = record.network_info or {}
        return cls(
            id=record.session_id,
            session_id=record.session_id,
            user_id=record.user_id,
            ip_address=record.ip,
            isp=info.get("isp") or None,
            organization=info.get("organization") or None,
            country=info.get("country") or None,
            region=info.get("region") or None,
            city=info.get("city") or None,
            timezone=info.get("timezone") or None,
            is_vpn=1 if info.get("is_vpn") else 0,
            is_proxy=1 if info.get("is_proxy") else 0,
            is_tor=1 if info.get("is_tor") else 0,
            latitude=info.get("latitude") or None,
            longitude=info.get("longitude") or None,
            user_agent=record.user_agent,
            connected_at=record.connected_at.isoformat(),
            last_activity=record.last_activity.isoformat(),
            user_name=record.user_name,
            user_email=record.user_email,
            user_role=record.user_role,
        )


class RegisterResponse(BaseModel):
    success: bool = True
    message: str


class ConnectionsResponse(BaseModel):
    success: bool = True
    data: list[ConnectionView]


class ClearResponse(BaseModel):
    success: bool = True
    message: str
    deleted_count: int = Field(serialization_alias="deletedCount")


class RemoveResponse(BaseModel):
    success: bool = True
    removed: bool


class NetworkInfo(BaseModel):
    """Geolocation details for a client IP."""

    ip: str
    isp: str
    organization: str
    country: str
    region: str
    city: str
    timezone: str
    isp_type: str | None = None
    is_vpn: bool = False
    is_proxy: bool = False
    is_tor: bool = False
    latitude: float | None = None
    longitude: float | None = None

    @model_serializer(mode="wrap")
    def _omit_unresolved_isp_type(self, handler):
        # Degraded results carry no isp_type key at all
        data = handler(self)
        if self.isp_type is None:
            data.pop("isp_type", None)
        return data


class DetectResponse(BaseModel):
    success: bool = True
    data: NetworkInfo
