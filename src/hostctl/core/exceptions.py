"""Application errors and the handlers that render them with request_id."""

from asgi_correlation_id import correlation_id
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.hostctl.core.logging import get_logger

logger = get_logger(__name__)


class HostctlError(Exception):
    """Base class for errors raised by the registry and the connection resolver.

    Attributes:
        code: Stable machine-readable error code (e.g. "SERVER_NOT_FOUND")
        status_code: HTTP status the API layer responds with
        message: Human-readable description
    """

    code: str = "HOSTCTL_ERROR"
    status_code: int = status.HTTP_400_BAD_REQUEST
    message: str = "request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.message
        super().__init__(self.message)

    @property
    def detail(self) -> str:
        return self.message


# --- Validation ---


class InvalidFieldError(HostctlError, ValueError):
    """Malformed input. Also a ValueError so pydantic validators report it per field."""

    code = "INVALID_FIELD"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


# --- Conflicts ---


class AlreadyExistsError(HostctlError):
    code = "ALREADY_EXISTS"
    status_code = status.HTTP_409_CONFLICT


class ServerAlreadyExistsError(AlreadyExistsError):
    code = "SERVER_ALREADY_EXISTS"
    message = "server already exists"


class ServerHostAlreadyExistsError(AlreadyExistsError):
    code = "SERVER_HOST_ALREADY_EXISTS"
    message = "server with this host and port already exists"


# --- Access ---


class ServerAccessError(HostctlError):
    """Not found and not owned collapse into this for API responses."""

    code = "SERVER_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    message = "server not found"


class ServerNotFoundError(ServerAccessError):
    message = "server not found"


class PermissionDeniedError(ServerAccessError):
    message = "permission denied"


class OrganizationNotFoundError(HostctlError):
    code = "ORGANIZATION_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    message = "organization not found"


# --- Connectivity ---


class ConnectivityError(HostctlError):
    code = "CONNECTIVITY_FAILURE"
    status_code = status.HTTP_502_BAD_GATEWAY
    message = "remote host unreachable"


class AuthenticationFailedError(ConnectivityError):
    """SSH authentication failed with every available method.

    Carries the reason each attempted method failed; a method that was not
    attempted (no credential configured) is recorded as None.
    """

    code = "SSH_AUTHENTICATION_FAILED"

    def __init__(
        self,
        message: str = "ssh authentication failed",
        key_error: str | None = None,
        password_error: str | None = None,
    ):
        self.key_error = key_error
        self.password_error = password_error
        reasons = [
            f"{label}: {reason}"
            for label, reason in (("private key", key_error), ("password", password_error))
            if reason
        ]
        if reasons:
            message = f"{message} ({'; '.join(reasons)})"
        super().__init__(message)


class SSHUnreachableError(ConnectivityError):
    code = "SSH_UNREACHABLE"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "ssh connection to server failed"


class EngineUnavailableError(ConnectivityError):
    code = "ENGINE_UNAVAILABLE"
    message = "container engine unavailable on target server"


class RemoteCommandError(ConnectivityError):
    code = "REMOTE_COMMAND_FAILED"

    def __init__(self, command: str, exit_status: int, stderr: str = ""):
        self.command = command
        self.exit_status = exit_status
        self.stderr = stderr
        super().__init__(f"command exited with status {exit_status}: {stderr.strip()}")


class ContainerNotFoundError(HostctlError):
    code = "CONTAINER_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    message = "container not found"


# --- Storage ---


class TransactionFailureError(HostctlError):
    code = "TRANSACTION_FAILED"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "transaction failed"


def setup_exception_handlers(app: FastAPI) -> None:
    """Configure exception handlers that include request_id in responses."""

    @app.exception_handler(HostctlError)
    async def hostctl_exception_handler(request: Request, exc: HostctlError) -> JSONResponse:
        # Ownership failures must not reveal that the server exists
        detail = ServerAccessError.message if isinstance(exc, ServerAccessError) else exc.detail
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": detail,
                "code": exc.code,
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        # Malformed fields are a 400, same as the registry's own validation
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "detail": jsonable_encoder(
                    [{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()]
                ),
                "code": InvalidFieldError.code,
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def starlette_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = correlation_id.get()
        logger.exception(
            "Unhandled exception",
            exc_info=exc,
            request_id=request_id,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "request_id": request_id,
            },
        )
