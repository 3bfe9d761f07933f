from datetime import datetime
from typing import Optional

from beanie import PydanticObjectId
from fastapi_users import schemas
from pydantic import Field, BaseModel


class UserRead(schemas.BaseUser[PydanticObjectId]):
    name: Optional[str] = None
    walletMoney: float
    address: str
    created_at: datetime


class UserCreate(schemas.BaseUserCreate):
    name: Optional[str] = None


class UserUpdate(schemas.BaseUserUpdate):
    name: Optional[str] = None


class AddressUpdate(BaseModel):
    address: str = Field(..., min_length=20)


class AddressRead(BaseModel):
    id: str = Field(..., alias="_id")
    email: str
    address: str

    class Config:
        populate_by_name = True
