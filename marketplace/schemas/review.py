from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Annotated, List


class ReviewCreate(BaseModel):
    rating: Annotated[int, Field(ge=1, le=5)]
    comment: Annotated[str, Field(max_length=2000)] = ""


class ReviewRead(BaseModel):
    id: str
    product_id: str
    user_id: str
    username: str = "Anonymous"
    profile_image: Optional[str] = None
    rating: int
    comment: str = ""
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(extra="ignore")


class ReviewCreated(BaseModel):
    detail: str
    review_id: str


class ReviewPage(BaseModel):
    reviews: List[ReviewRead]
    total_reviews: int
