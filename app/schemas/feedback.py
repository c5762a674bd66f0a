from pydantic import BaseModel, Field

from app.models.analysis_feedback import FeedbackVote


class FeedbackRequest(BaseModel):
    deck_hash: str = Field(..., alias="deckHash", min_length=10, max_length=128)
    vote: FeedbackVote
    reason: str = Field(..., min_length=5, max_length=500)

    class Config:
        populate_by_name = True


class FeedbackResponse(BaseModel):
    message: str
