from fastapi import APIRouter, Request
from fastapi.exceptions import HTTPException

# Utils
from utils.log_utils import LogUtil

# Services
from services.handler_configuration_service import HandlerConfigurationService

# Models
from models.request.handler_configuration_request import HandlerConfigurationRequest

# Exceptions
from exceptions.country_guard_exception import CountryGuardException, ConfigurationException

def create_handler_configuration_api(
    log_util: LogUtil,
    handler_configuration_service: HandlerConfigurationService
) -> APIRouter:
    router = APIRouter(
        prefix="/handler-configuration",
        tags=["handler-configuration"],
    )

    @router.post("/{form_id}/{handler_id}")
    async def create_configuration(request: Request, form_id: str, handler_id: str, configuration: HandlerConfigurationRequest):
        try:
            return await handler_configuration_service.create_configuration(
                form_id=form_id,
                handler_id=handler_id,
                raw_configuration=configuration.model_dump()
            )
        except ConfigurationException as e:
            raise HTTPException(status_code=e.status_code, detail={"message": e.message, "field_errors": e.field_errors})
        except CountryGuardException as e:
            log_util.error(service_name="HandlerConfigurationAPI", message=f"Error creating configuration: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except Exception as e:
            log_util.error(service_name="HandlerConfigurationAPI", message=f"Error creating configuration: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @router.put("/{form_id}/{handler_id}")
    async def update_configuration(request: Request, form_id: str, handler_id: str, configuration: HandlerConfigurationRequest):
        try:
            return await handler_configuration_service.update_configuration(
                form_id=form_id,
                handler_id=handler_id,
                raw_configuration=configuration.model_dump()
            )
        except ConfigurationException as e:
            raise HTTPException(status_code=e.status_code, detail={"message": e.message, "field_errors": e.field_errors})
        except CountryGuardException as e:
            log_util.error(service_name="HandlerConfigurationAPI", message=f"Error updating configuration: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except Exception as e:
            log_util.error(service_name="HandlerConfigurationAPI", message=f"Error updating configuration: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @router.get("/{form_id}")
    async def get_form_configurations(request: Request, form_id: str):
        """
        List all handler configurations on a form
        """
        try:
            return await handler_configuration_service.get_configurations_by_form(form_id=form_id)
        except CountryGuardException as e:
            log_util.error(service_name="HandlerConfigurationAPI", message=f"Error listing configurations: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except Exception as e:
            log_util.error(service_name="HandlerConfigurationAPI", message=f"Error listing configurations: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @router.get("/{form_id}/{handler_id}")
    async def get_configuration(request: Request, form_id: str, handler_id: str):
        try:
            return await handler_configuration_service.get_configuration(form_id=form_id, handler_id=handler_id)
        except CountryGuardException as e:
            log_util.error(service_name="HandlerConfigurationAPI", message=f"Error getting configuration: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except Exception as e:
            log_util.error(service_name="HandlerConfigurationAPI", message=f"Error getting configuration: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @router.delete("/{form_id}/{handler_id}")
    async def delete_configuration(request: Request, form_id: str, handler_id: str):
        try:
            return await handler_configuration_service.delete_configuration(form_id=form_id, handler_id=handler_id)
        except CountryGuardException as e:
            log_util.error(service_name="HandlerConfigurationAPI", message=f"Error deleting configuration: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except Exception as e:
            log_util.error(service_name="HandlerConfigurationAPI", message=f"Error deleting configuration: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    return router
