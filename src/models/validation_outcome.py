from pydantic import BaseModel, Field
from typing import Optional, Literal


class ValidationOutcome(BaseModel):
    """
    Result of a single validate call.
    reason:
        match - declared country equals inferred country
        tolerance_exhausted - same country rejected more than tolerance times, let through
        mismatch - rejected, user may resubmit
        country_required - declared country missing
    """
    accepted: bool
    reason: Literal["match", "tolerance_exhausted", "mismatch", "country_required"]
    message: Optional[str] = Field(None, description="User facing error message when rejected")
    field: Optional[str] = Field(None, description="Submission field the error is attached to")
    inferred_country: Optional[str] = None
