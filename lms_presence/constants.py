"""
Application-level constants for hardcoded protocol behavior.

These values are part of the wire contract with the LMS frontend and
should NEVER be changed via environment variables. For configurable
values (staleness threshold, sweep interval, lookup timeouts, etc.),
see lms_presence/settings.py.
"""

# ============================================================================
# Client IP Resolution
# ============================================================================

# Proxy headers checked in order when resolving the client IP
CLIENT_IP_HEADERS = ("x-forwarded-for", "x-real-ip", "cf-connecting-ip")

# Placeholder stored when no proxy header carries the client IP
UNKNOWN_IP = "unknown"


# ============================================================================
# Connection Registry Defaults
# ============================================================================

DEFAULT_STALE_AFTER_SECONDS = 60 * 60

DEFAULT_SWEEP_EVERY = 10


# ============================================================================
# Response Messages
# ============================================================================

MSG_SESSION_ID_REQUIRED = "sessionId es requerido"
MSG_CONNECTION_REGISTERED = "Conexión registrada exitosamente"
MSG_REGISTER_FAILED = "Error al registrar la conexión"
MSG_LIST_FAILED = "Error al obtener las conexiones"
MSG_CLEAR_FAILED = "Error al limpiar las conexiones"
MSG_NOT_AUTHENTICATED = "No autenticado"
MSG_ACCESS_DENIED = "Acceso denegado"
MSG_IP_NOT_DETECTED = "No se pudo detectar la IP del cliente"
MSG_DETECT_FAILED = "Error al detectar la información de red"

# Placeholder for geolocation fields the lookup service could not resolve
NOT_AVAILABLE = "No disponible"


# ============================================================================
# Background Task Behavior
# ============================================================================

# Backoff delay (seconds) when the sweep task encounters an error
TASK_ERROR_BACKOFF_SECONDS = 1
