from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime


class SubmissionRecordData(BaseModel):
    """
    Model for a stored form submission: arbitrary field data plus free-text notes
    """
    id: Optional[str] = None  # MongoDB _id
    form_id: str
    handler_id: Optional[str] = None
    session_id: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def has_field(self, key: str) -> bool:
        return key in self.data

    def set_field(self, key: str, value: Any):
        self.data[key] = value

    def append_note(self, text: str):
        self.notes = (self.notes or "") + text
