"""Pydantic models for Expense data"""
from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Optional

from bson import ObjectId
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from utils.dates import to_bson_datetime


class APIModel(BaseModel):
    """Base for API payloads: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(populate_by_name=True)


def reject_boolean_amount(value):
    # JSON true/false would otherwise coerce to 1.0/0.0
    if isinstance(value, bool):
        raise ValueError("Amount must be a number")
    return value


Amount = Annotated[float, BeforeValidator(reject_boolean_amount)]


class Expense(APIModel):
    """
    A single expense as returned by the API.
    """
    id: str
    title: Optional[str] = None
    amount: float
    category: str
    payment_method: str = Field(..., alias="paymentMethod")
    date: datetime
    user: str

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Expense":
        """Builds the API model from a raw MongoDB document."""
        return cls(
            id=str(doc["_id"]),
            title=doc.get("title"),
            amount=doc["amount"],
            category=doc["category"],
            payment_method=doc["paymentMethod"],
            date=doc["date"],
            user=str(doc["user"]),
        )


class ExpenseCreate(APIModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    title: Optional[str] = None
    amount: Amount = Field(..., ge=0, allow_inf_nan=False)
    category: str = Field(..., min_length=1)
    payment_method: str = Field(..., alias="paymentMethod", min_length=1)
    date: Optional[datetime] = None

    def to_document(self, owner_id: ObjectId) -> Dict[str, Any]:
        return {
            "title": self.title,
            "amount": self.amount,
            "category": self.category,
            "paymentMethod": self.payment_method,
            "date": to_bson_datetime(self.date or datetime.now(timezone.utc)),
            "user": owner_id,
        }


class ExpenseUpdate(APIModel):
    """
    Partial update. Only fields present in the request body are merged into the
    stored record; ownership and id can not be changed.
    """
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra="forbid")

    title: Optional[str] = None
    amount: Optional[Amount] = Field(default=None, ge=0, allow_inf_nan=False)
    category: Optional[str] = Field(default=None, min_length=1)
    payment_method: Optional[str] = Field(default=None, alias="paymentMethod", min_length=1)
    date: Optional[datetime] = None

    @field_validator("amount", "category", "payment_method", "date")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("Field can not be null")
        return value

    def to_set_document(self) -> Dict[str, Any]:
        fields = self.model_dump(exclude_unset=True, by_alias=True)
        if "date" in fields:
            fields["date"] = to_bson_datetime(fields["date"])
        return fields


class BulkDeleteRequest(APIModel):
    expense_ids: List[str] = Field(default_factory=list, alias="expenseIds")


class ExpenseResponse(APIModel):
    message: str
    data: Expense


class ExpenseListResponse(APIModel):
    expenses: List[Expense]
    total_expenses: int = Field(..., alias="totalExpenses")
    total_pages: int = Field(..., alias="totalPages")
    current_page: int = Field(..., alias="currentPage")


class CSVUploadResponse(APIModel):
    message: str
    data: List[Expense]


class BulkDeleteResponse(APIModel):
    message: str
    deleted_count: int = Field(..., alias="deletedCount")


class MonthlyCategoryTotal(APIModel):
    month: str
    category: str
    total_amount: float = Field(..., alias="totalAmount")


class MessageResponse(BaseModel):
    message: str
