# participation_service/schemas/token.py
from typing import Optional

from pydantic import BaseModel, Field


class TokenPayload(BaseModel):
    sub: str  # "sub" is the standard claim for subject (member ID)
    org_id: Optional[str] = Field(default=None, alias="orgId")
    exp: int  # Standard claim for expiration time

    model_config = {
        "populate_by_name": True,  # Allow populating by alias
        "from_attributes": True,
    }
