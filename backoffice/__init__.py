from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backoffice.core.config import Config, setup_logging
from backoffice.exceptions import (
    create_exception_handler,
    AccessTokenRequiredException,
    CircularReferenceException,
    InactiveAccountException,
    InvalidExportFormatException,
    InvalidParentException,
    InvalidStatusTransitionException,
    InvalidTokenException,
    PermissionRequiredException,
)
from backoffice.middleware.auth_middleware import CustomAuthMiddleWare
from backoffice.routers.audit_logs import router as audit_logs_router
from backoffice.routers.categories import router as categories_router
from backoffice.routers.customers import router as customers_router
from backoffice.routers.exports import router as exports_router
from backoffice.routers.orders import router as orders_router

setup_logging()

api_version = "v1"
swagger_docs_url = f"/api/{api_version}/docs"
redoc_docs_url = f"/api/{api_version}/redoc"
openapi_url = f"/api/{api_version}/openapi.json"

app = FastAPI(
    docs_url=swagger_docs_url,
    redoc_url=redoc_docs_url,
    openapi_url=openapi_url,
    title="Back-office Admin API",
    description="Admin API for managing the store's categories, orders and customers.",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['GET', 'POST', 'PUT', 'PATCH', 'DELETE'],
    allow_headers=["*"],
)

# Add custom auth middleware after CORS (order matters!)
app.add_middleware(CustomAuthMiddleWare)

# Register endpoints
app.include_router(categories_router, prefix=f'/api/{api_version}/categories', tags=["Categories"])
app.include_router(orders_router, prefix=f'/api/{api_version}/orders', tags=["Orders"])
app.include_router(customers_router, prefix=f'/api/{api_version}/customers', tags=["Customers"])
app.include_router(exports_router, prefix=f'/api/{api_version}/export', tags=["Export"])
app.include_router(audit_logs_router, prefix=f'/api/{api_version}/audit-logs', tags=["Audit Logs"])


@app.get("/")
async def root():
    return {
        "message": "Back-office Admin API",
        "version": "1.0.0",
        "docs": swagger_docs_url,
        "status": "running"
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


# Register custom exceptions

# Auth-related exception handlers
app.add_exception_handler(AccessTokenRequiredException, create_exception_handler(401, "Authentication required!"))
app.add_exception_handler(InvalidTokenException, create_exception_handler(401, "Invalid or expired token provided!"))
app.add_exception_handler(InactiveAccountException, create_exception_handler(403, "This account has been deactivated."))
app.add_exception_handler(PermissionRequiredException, create_exception_handler(403, "Only admins can access this resource!"))

# Category hierarchy exception handlers
app.add_exception_handler(InvalidParentException, create_exception_handler(422))
app.add_exception_handler(CircularReferenceException, create_exception_handler(422))

# Order lifecycle exception handlers
app.add_exception_handler(InvalidStatusTransitionException, create_exception_handler(422))

# Export exception handlers
app.add_exception_handler(InvalidExportFormatException, create_exception_handler(400))
