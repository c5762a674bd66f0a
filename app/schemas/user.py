from pydantic import BaseModel


class TokenPayload(BaseModel):
    sub: str  # user id from the identity provider
    email: str | None = None
    name: str | None = None
    exp: int
    type: str = "access"


class Identity(BaseModel):
    """Verified caller. Produced by app.auth from a bearer token."""
    user_id: str
    email: str | None = None
    name: str | None = None


class OperationUsage(BaseModel):
    limit: int
    used_today: int
    remaining_today: int


class UsageSummaryResponse(BaseModel):
    plan: str
    deck: OperationUsage
    hand: OperationUsage
    card: OperationUsage
