from datetime import datetime

from beanie import Document
from typing import Optional
from pydantic import Field
from pymongo import IndexModel
from pymongo.collation import Collation
from fastapi_users_db_beanie import BeanieBaseUser, BeanieUserDatabase

from storecart.config.settings import settings


class User(BeanieBaseUser, Document):
    name: Optional[str] = None
    walletMoney: float = Field(default=settings.DEFAULT_WALLET_MONEY, ge=0)
    address: str = Field(default=settings.DEFAULT_ADDRESS)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "users"
        email_collation = Collation("en", strength=2)  # Case-insensitive collation for email queries
        indexes = [
            IndexModel("email", unique=True),
            IndexModel("email", name="case_insensitive_email_index", collation=email_collation),
        ]

    class Config:
        json_schema_extra = {
            "example": {
                "email": "jane.doe@example.com",
                "name": "Jane Doe",
                "walletMoney": 500,
                "address": "42 Wallaby Way, Sydney, NSW 2000",
            }
        }

    def has_set_non_default_address(self) -> bool:
        return self.address != settings.DEFAULT_ADDRESS


async def get_user_db():
    yield BeanieUserDatabase(User)
