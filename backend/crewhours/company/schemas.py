import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class CompanySettingsResponse(BaseModel):
    id: uuid.UUID
    signature_path: str | None = None
    updated_by: uuid.UUID | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
