from pydantic import BaseModel, Field
from typing import Dict, Any


class FormSubmissionRequest(BaseModel):
    """
    Request body for the validate and submit phases of a form submission
    """
    data: Dict[str, Any] = Field(default_factory=dict, description="Submitted form field values")
