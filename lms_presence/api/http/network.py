"""
Network presence endpoints.

Clients register their session periodically (heartbeat) and teachers
inspect or reset the set of active connections.
"""

from fastapi import APIRouter, Body, Depends, Request, status
from fastapi.responses import JSONResponse

from lms_presence.constants import (
    MSG_CLEAR_FAILED,
    MSG_CONNECTION_REGISTERED,
    MSG_DETECT_FAILED,
    MSG_IP_NOT_DETECTED,
    MSG_LIST_FAILED,
    MSG_REGISTER_FAILED,
    MSG_SESSION_ID_REQUIRED,
    UNKNOWN_IP,
)
from lms_presence.dependencies import ConnectionRegistryDep, require_privileged
from lms_presence.exceptions import ExternalServiceError, ValidationError
from lms_presence.logging import logger, set_log_context
from lms_presence.schemas.connection import (
    ClearResponse,
    ConnectionData,
    ConnectionsResponse,
    ConnectionView,
    DetectResponse,
    RegisterConnectionInput,
    RegisterResponse,
    RemoveResponse,
)
from lms_presence.schemas.user import UserModel
from lms_presence.utils.client_ip import resolve_client_ip
from lms_presence.utils.error_handler import handle_http_errors
from lms_presence.utils.geolocation import (
    lookup_network_info,
    unavailable_network_info,
)

router = APIRouter(prefix="/api/network", tags=["network"])


@router.post(
    "/register",
    response_model=RegisterResponse,
    summary="Register or refresh a client connection",
)
@handle_http_errors(error_message=MSG_REGISTER_FAILED)
async def register_connection(
    request: Request,
    registry: ConnectionRegistryDep,
    payload: RegisterConnectionInput | None = Body(default=None),
) -> RegisterResponse:
    """
    Track the calling client session.

    Anonymous callers are tracked without identity. When the request
    carries a valid session token the user's id, name, email and role are
    stored with the connection.

    Raises:
        HTTPException: 400 if ``sessionId`` is missing.
    """
    if payload is None or not payload.session_id:
        raise ValidationError(MSG_SESSION_ID_REQUIRED)

    user = request.user if isinstance(request.user, UserModel) else None

    data = ConnectionData(
        identity=user.to_identity() if user else None,
        ip=resolve_client_ip(request.headers),
        network_info=payload.network_info or {},
        user_agent=request.headers.get("user-agent", ""),
    )

    set_log_context(session_id=payload.session_id)
    registry.upsert(payload.session_id, data)

    return RegisterResponse(message=MSG_CONNECTION_REGISTERED)


@router.get(
    "/connections",
    response_model=ConnectionsResponse,
    summary="List active connections",
)
@handle_http_errors(error_message=MSG_LIST_FAILED)
async def list_connections(
    registry: ConnectionRegistryDep,
    user: UserModel = Depends(require_privileged()),
) -> ConnectionsResponse:
    """
    List non-stale connections, most recently active first.
    """
    records = sorted(
        registry.list_active(),
        key=lambda record: record.last_activity,
        reverse=True,
    )
    logger.debug(f"{user.username} listed {len(records)} connections")

    return ConnectionsResponse(
        data=[ConnectionView.from_record(record) for record in records]
    )


@router.post(
    "/connections/clear",
    response_model=ClearResponse,
    summary="Remove every tracked connection",
)
@handle_http_errors(error_message=MSG_CLEAR_FAILED)
async def clear_connections(
    registry: ConnectionRegistryDep,
    user: UserModel = Depends(require_privileged()),
) -> ClearResponse:
    """
    Delete all connection records, including active ones.
    """
    deleted_count = registry.clear_all()
    logger.info(f"{user.username} cleared {deleted_count} connections")

    return ClearResponse(
        message=f"Se eliminaron {deleted_count} conexiones",
        deleted_count=deleted_count,
    )


@router.delete(
    "/connections/{session_id}",
    response_model=RemoveResponse,
    summary="Remove one tracked connection",
)
@handle_http_errors
async def remove_connection(
    session_id: str,
    registry: ConnectionRegistryDep,
    user: UserModel = Depends(require_privileged()),
) -> RemoveResponse:
    removed = registry.remove(session_id)
    if removed:
        logger.info(f"{user.username} removed connection {session_id}")

    return RemoveResponse(removed=removed)


@router.get(
    "/detect",
    response_model=DetectResponse,
    summary="Detect network information for the caller",
    responses={status.HTTP_400_BAD_REQUEST: {"description": MSG_IP_NOT_DETECTED}},
)
async def detect_network(request: Request) -> DetectResponse | JSONResponse:
    """
    Resolve the caller's IP and look up its geolocation.

    When the lookup service is unavailable the IP is still returned with
    placeholder values for everything else. Failures are reported as
    ``{"success": false, "error": ...}``.
    """
    client_ip = resolve_client_ip(request.headers)
    if client_ip == UNKNOWN_IP:
        return detect_error(status.HTTP_400_BAD_REQUEST, MSG_IP_NOT_DETECTED)

    try:
        info = await lookup_network_info(client_ip)
    except ExternalServiceError:
        info = unavailable_network_info(
            client_ip,
            isp="No disponible (servicio externo no disponible)",
        )
    except Exception as ex:
        logger.error(
            f"Network detection failed for {client_ip}: {ex}", exc_info=True
        )
        return detect_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR, MSG_DETECT_FAILED
        )

    return DetectResponse(data=info)


def detect_error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
    )
