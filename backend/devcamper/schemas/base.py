# backend/devcamper/schemas/base.py
from datetime import datetime
from pydantic import BaseModel, ConfigDict

class BaseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

class TimestampMixin(BaseModel):
    created_at: datetime

def strip_text(value):
    """Trim surrounding whitespace from string inputs"""
    return value.strip() if isinstance(value, str) else value
