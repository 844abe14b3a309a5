from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field


class OrderNotification(BaseModel):
    model_config = ConfigDict(extra="forbid")

    customer_name: str = Field(..., min_length=1, max_length=200)
    customer_email: EmailStr
    customer_phone: Optional[str] = Field(None, max_length=50)
    delivery_method: Literal["pickup", "delivery"]
    delivery_date: Optional[str] = None
    delivery_address: Optional[str] = Field(None, max_length=500)
    items: List[Dict[str, Any]] = Field(..., min_length=1)
    total_price: float = Field(..., ge=0)
    status: Literal["pending"] = "pending"
    user_id: Optional[str] = None


class EnquiryNotification(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {
                "name": "Eleanor",
                "email": "eleanor@example.com",
                "subject": "Wedding cake",
                "message": "Could you make a three tier lemon cake?",
            }
        },
    )

    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=50)
    subject: Optional[str] = Field(None, max_length=200)
    message: str = Field(..., min_length=1, max_length=5000)
