from typing import Dict, Any, List

# Utils
from utils.log_utils import LogUtil

# Database
from database.country_guard_db import CountryGuardDB

# Services
from services.country_validation_service import CountryValidationService

# Models
from models.handler_configuration_data import HandlerConfigurationData

# Exceptions
from exceptions.country_guard_exception import ConfigurationNotFoundException

class HandlerConfigurationService:
    def __init__(self, log_util: LogUtil, country_guard_db: CountryGuardDB,
                 country_validation_service: CountryValidationService):
        self.log_util = log_util
        self.country_guard_db = country_guard_db
        self.country_validation_service = country_validation_service

    async def create_configuration(self, form_id: str, handler_id: str, raw_configuration: Dict[str, Any]) -> HandlerConfigurationData:
        """
        Validate and store a new handler configuration
        """
        configuration = self.country_validation_service.build_configuration(form_id, handler_id, raw_configuration)
        saved = await self.country_guard_db.create_handler_configuration(configuration)
        self.log_util.info(
            service_name="HandlerConfigurationService",
            message=f"Created configuration for handler {handler_id} on form {form_id}"
        )
        return saved

    async def update_configuration(self, form_id: str, handler_id: str, raw_configuration: Dict[str, Any]) -> HandlerConfigurationData:
        """
        Validate and replace an existing handler configuration
        """
        configuration = self.country_validation_service.build_configuration(form_id, handler_id, raw_configuration)
        updated = await self.country_guard_db.update_handler_configuration(configuration)
        if updated is None:
            raise ConfigurationNotFoundException(
                message=f"No configuration for handler {handler_id} on form {form_id}"
            )
        self.log_util.info(
            service_name="HandlerConfigurationService",
            message=f"Updated configuration for handler {handler_id} on form {form_id}"
        )
        return updated

    async def get_configuration(self, form_id: str, handler_id: str) -> HandlerConfigurationData:
        configuration = await self.country_guard_db.get_handler_configuration(form_id, handler_id)
        if configuration is None:
            raise ConfigurationNotFoundException(
                message=f"No configuration for handler {handler_id} on form {form_id}"
            )
        return configuration

    async def get_configurations_by_form(self, form_id: str) -> List[HandlerConfigurationData]:
        return await self.country_guard_db.get_handler_configurations_by_form(form_id)

    async def delete_configuration(self, form_id: str, handler_id: str) -> Dict[str, Any]:
        deleted = await self.country_guard_db.delete_handler_configuration(form_id, handler_id)
        if not deleted:
            raise ConfigurationNotFoundException(
                message=f"No configuration for handler {handler_id} on form {form_id}"
            )
        self.log_util.info(
            service_name="HandlerConfigurationService",
            message=f"Deleted configuration for handler {handler_id} on form {form_id}"
        )
        return {"status": "success", "message": "Configuration deleted"}
