from fastapi import Request, HTTPException, status
from fastapi.responses import JSONResponse
from typing import Any, Callable, Optional


class APIException(Exception):
    """ Base class for all exceptions in the back-office API. """

    # request field the error is reported against, if any
    field: Optional[str] = None


class InvalidTokenException(APIException):
    """ Exception is thrown when user provided an expired invalid token. """
    pass


class AccessTokenRequiredException(APIException):
    """ Exception is raised when a request reaches a protected route without an access token. """
    pass


class PermissionRequiredException(APIException):
    """ Exception is thrown when a user does not have permission to peform the current action or access an endpoint/resource. """
    pass


class InactiveAccountException(APIException):
    """ Exception is thrown when a deactivated account tries to use the API. """
    pass


class InvalidParentException(APIException):
    """ Exception is raised when a category is given itself as parent. """
    field = "new_parent_id"

    def __init__(self, message: str = "Category cannot be its own parent", field: Optional[str] = None):
        super().__init__(message)
        if field:
            self.field = field


class CircularReferenceException(APIException):
    """ Exception is raised when a parent change would make a category its own ancestor. """
    field = "new_parent_id"

    def __init__(
        self,
        message: str = "Cannot create circular reference in category hierarchy",
        field: Optional[str] = None,
    ):
        super().__init__(message)
        if field:
            self.field = field


class InvalidStatusTransitionException(APIException):
    """ Exception is raised when an order status change is not allowed by the lifecycle. """
    field = "status"

    def __init__(self, current_status, new_status):
        self.current_status = current_status
        self.new_status = new_status
        super().__init__(
            f"Invalid status transition from {_status_name(current_status)} to {_status_name(new_status)}"
        )


class InvalidExportFormatException(APIException):
    """ Exception is raised when an export is requested in an unsupported format. """
    field = "format"


def _status_name(value) -> str:
    return getattr(value, "value", str(value)).upper()


class NotFoundException(HTTPException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class BadRequestException(HTTPException):
    def __init__(self, detail: str = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class ConflictException(HTTPException):
    def __init__(self, detail: str = "Resource already exists"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


def create_exception_handler(
    status_code: int, detail: Any = None
) -> Callable[[Request, Exception], JSONResponse]:
    """
    Build an exception handler for an APIException subclass.

    With a fixed ``detail`` every occurrence answers the same message, otherwise the
    exception's own message is used. Exceptions tied to a request field additionally
    report it under ``errors`` the way request validation failures are reported.
    """

    async def exception_handler(request: Request, exception: APIException):
        message = detail if detail is not None else str(exception)
        content = {"detail": message}

        if getattr(exception, "field", None):
            content["errors"] = {exception.field: [message]}

        return JSONResponse(
            content=content,
            status_code=status_code
        )

    return exception_handler
