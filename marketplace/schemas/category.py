from datetime import datetime

from pydantic import BaseModel, ConfigDict
from typing import Optional


class CategoryRead(BaseModel):
    id: str
    name: str
    image: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(extra="ignore")
