from pydantic import BaseModel, Field
from typing import Optional, Dict


class RetryStateScope(BaseModel):
    """
    Identifies one submission attempt chain: a session on a handler of a form.
    """
    form_id: str
    handler_id: str
    session_id: str

    @property
    def document_id(self) -> Dict[str, str]:
        """
        Compound _id of the retry state document, one field per scope part
        """
        return {"form_id": self.form_id, "handler_id": self.handler_id, "session_id": self.session_id}

    @property
    def key(self) -> str:
        # Log label only, parts may themselves contain ':'
        return f"{self.form_id}:{self.handler_id}:{self.session_id}"


class RetryStateData(BaseModel):
    """
    Consecutive mismatch streak for the last rejected declared country.
    previous_failures is only meaningful together with previous_country.
    """
    previous_country: Optional[str] = Field(default=None, description="Last declared country that was rejected")
    previous_failures: int = Field(default=0, description="Consecutive rejections of previous_country")
