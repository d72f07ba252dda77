from pydantic import BaseModel, ConfigDict
from typing import Optional


class Address(BaseModel):
    full_name: str = ""
    email: str = ""
    phone_number: str = ""
    region: str = ""
    postal_code: str = ""
    city: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    address_string: str = ""

    model_config = ConfigDict(extra="ignore")
