from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field, ConfigDict, StrictInt


class TransactionType(str, Enum):
    CHARGE = "CHARGE"
    USE = "USE"


class PointAmountRequest(BaseModel):
    amount: StrictInt = Field(..., ge=0, description="Points to charge or use")

    model_config = ConfigDict(json_schema_extra={
        "example": {"amount": 500}
    })


class UserBalance(BaseModel):
    user_id: int = Field(..., ge=0)
    amount: int = Field(..., ge=0)
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class HistoryRecord(BaseModel):
    id: int
    user_id: int
    amount: int = Field(..., description="Balance after the transaction")
    transaction_type: TransactionType
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, frozen=True)
