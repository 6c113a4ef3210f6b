from pydantic import BaseModel
from typing import Optional, Any


class HandlerConfigurationRequest(BaseModel):
    """
    Raw author input for a handler configuration.
    tolerance stays untyped here so invalid values reach configuration validation.
    """
    country_field: Optional[str] = None
    result_field: Optional[str] = None
    failure_message_template: Optional[str] = None
    tolerance: Optional[Any] = 1
