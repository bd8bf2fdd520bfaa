from pydantic import BaseModel, Field


class UnlockRequest(BaseModel):
    # JSON numbers are accepted as ids; the unlock service stringifies them
    record_ids: list[str | int] = Field(..., min_length=1)


class UnlockOut(BaseModel):
    newly_granted: list[str]
    already_granted: list[str]
    charged: int
    remaining_balance: int


class UnlockErrorOut(BaseModel):
    error: str
    message: str
    required: int | None = None
    available: int | None = None


class EntitlementsOut(BaseModel):
    vertical_key: str
    record_ids: list[str]
