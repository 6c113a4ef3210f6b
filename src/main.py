import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

# Utils
from utils.log_utils import LogUtil
from utils.environment_utils import EnvironmentUtils

# Database
from database.country_guard_db import CountryGuardDB

# Services
from services.geolocation_service import GeolocationService
from services.retry_state_service import RetryStateService
from services.country_validation_service import CountryValidationService
from services.handler_configuration_service import HandlerConfigurationService
from services.form_submission_service import FormSubmissionService

# APIs
from apis.handler_configuration_api import create_handler_configuration_api
from apis.form_submission_api import create_form_submission_api

# Utils
log_util = LogUtil()
environment_utils = EnvironmentUtils(log_util=log_util)

# Database
country_guard_db = CountryGuardDB(log_util=log_util, environment_utils=environment_utils)

# Services
geolocation_service = GeolocationService(
    log_util=log_util,
    environment_utils=environment_utils
)

retry_state_service = RetryStateService(
    log_util=log_util,
    retry_store=country_guard_db
)

country_validation_service = CountryValidationService(
    log_util=log_util,
    geolocation_service=geolocation_service,
    retry_state_service=retry_state_service
)

handler_configuration_service = HandlerConfigurationService(
    log_util=log_util,
    country_guard_db=country_guard_db,
    country_validation_service=country_validation_service
)

form_submission_service = FormSubmissionService(
    log_util=log_util,
    country_guard_db=country_guard_db,
    handler_configuration_service=handler_configuration_service,
    country_validation_service=country_validation_service
)

# Define lifespan function
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    log_util.info(service_name="CountryGuardService", message="Application startup complete")

    yield

    # Shutdown
    country_guard_db.close()
    log_util.info(service_name="CountryGuardService", message="Application shutdown complete")

# Create FastAPI app
app = FastAPI(
    title="country guard service",
    description="Form submission guard matching declared country against IP geolocation",
    version="1.0.0",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Handler configuration APIs
handler_configuration_router = create_handler_configuration_api(
    log_util=log_util,
    handler_configuration_service=handler_configuration_service
)
app.include_router(handler_configuration_router)

# Form submission APIs (validate and submit phases)
form_submission_router = create_form_submission_api(
    log_util=log_util,
    form_submission_service=form_submission_service
)
app.include_router(form_submission_router)

# Health check endpoint
@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "country_guard_service"}

# Global exception handler for HTTPExceptions
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    log_util.error(service_name="CountryGuardService", message=f"HTTPException: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "error": str(exc),
            "status_code": exc.status_code
        },
        headers={"Content-Type": "application/json"}
    )

# Global exception handler for any unhandled exceptions
@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    log_util.error(service_name="CountryGuardService", message=f"Exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error": str(exc),
            "status_code": 500
        },
        headers={"Content-Type": "application/json"}
    )

if __name__ == "__main__":
    uvicorn.run(
        app,
        host=environment_utils.get_env_variable("HOST"),
        port=environment_utils.get_env_variable("PORT")
    )
