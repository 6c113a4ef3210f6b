from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

DEFAULT_FAILURE_MESSAGE_TEMPLATE = "Are you sure you are not from %value."
FAILURE_MESSAGE_PLACEHOLDER = "%value"


class HandlerConfigurationData(BaseModel):
    """
    Author-defined configuration of one country validation handler on a form.
    Values are checked by CountryValidationService.validate_configuration before saving.
    """
    id: Optional[str] = None  # MongoDB _id
    form_id: str = Field(..., description="Form the handler is attached to")
    handler_id: str = Field(..., description="Handler instance ID on the form")
    country_field: str = Field(..., description="Submission field holding the declared country")
    result_field: Optional[str] = Field(None, description="Submission field receiving the pass/fail flag")
    failure_message_template: str = Field(
        default=DEFAULT_FAILURE_MESSAGE_TEMPLATE,
        description="Rejection message, %value is replaced with the inferred country"
    )
    tolerance: int = Field(default=1, ge=1, description="Repeat mismatches of the same country before it is allowed")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def format_failure_message(self, inferred_country: str) -> str:
        template = self.failure_message_template or DEFAULT_FAILURE_MESSAGE_TEMPLATE
        return template.replace(FAILURE_MESSAGE_PLACEHOLDER, inferred_country)
