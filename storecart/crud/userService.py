from typing import Optional
from beanie import PydanticObjectId
from beanie.odm.queries.update import UpdateResponse
from beanie.operators import Inc
from fastapi import Depends, Request
from fastapi_users import BaseUserManager, FastAPIUsers, models, schemas
from fastapi_users.authentication import (
    AuthenticationBackend,
    BearerTransport,
    JWTStrategy,
)
from fastapi_users_db_beanie import BeanieUserDatabase, ObjectIDIDMixin
from storecart.models.userModel import User, get_user_db
from storecart.crud.cartService import CartService
from storecart.config.settings import settings

import logging

logger = logging.getLogger(__name__)

SECRET = settings.JWT_SECRET_KEY


class UserManager(ObjectIDIDMixin, BaseUserManager[User, PydanticObjectId]):
    reset_password_token_secret = SECRET
    verification_token_secret = SECRET

    async def on_after_register(
            self, user: User, request: Optional[Request] = None
    ):
        logger.info(f"User {user.id} has registered with wallet {user.walletMoney}")

    async def on_after_forgot_password(
            self, user: User, token: str, request: Optional[Request] = None
    ):
        logger.info(f"User {user.id} has forgotten their password")

    async def update(
            self,
            user_update: schemas.BaseUserUpdate,
            user: User,
            safe: bool = False,
            request: Optional[Request] = None,
    ) -> User:
        # Carts are keyed by email, so an email change takes the cart along
        previous_email = user.email
        updated_user = await super().update(user_update, user, safe=safe, request=request)
        if updated_user.email != previous_email:
            await CartService.move_cart(previous_email, updated_user.email)
        return updated_user


class UserService:
    """Ledger operations on the user document: lookups, address and wallet balance"""

    @staticmethod
    async def get_user_by_id(user_id: PydanticObjectId) -> Optional[User]:
        try:
            return await User.get(user_id)
        except Exception as e:
            logger.error(f"Failed to fetch user {user_id}: {e}")
            return None

    @staticmethod
    async def get_user_by_email(email: str) -> Optional[User]:
        try:
            return await User.find_one(User.email == email)
        except Exception as e:
            logger.error(f"Failed to fetch user {email}: {e}")
            return None

    @staticmethod
    async def get_user_address_by_id(user_id: PydanticObjectId) -> Optional[dict]:
        """Fetch only the id, email and address of a user"""
        user = await UserService.get_user_by_id(user_id)
        if not user:
            return None
        return {"_id": str(user.id), "email": user.email, "address": user.address}

    @staticmethod
    async def set_address(user: User, new_address: str) -> str:
        """Set the user's shipping address"""
        user.address = new_address
        await user.save()
        logger.info(f"Address updated for user {user.id}")
        return user.address

    @staticmethod
    async def debit_wallet(user_id: PydanticObjectId, amount: float) -> Optional[User]:
        """
        Atomically take `amount` out of the wallet.
        The balance check is part of the write filter, so a concurrent debit
        can never drive the wallet negative. Returns the updated user, or
        None when the balance no longer covers the amount.
        """
        return await User.find_one(
            User.id == user_id,
            User.walletMoney >= amount,
        ).update(
            Inc({User.walletMoney: -amount}),
            response_type=UpdateResponse.NEW_DOCUMENT,
        )

    @staticmethod
    async def credit_wallet(user_id: PydanticObjectId, amount: float) -> Optional[User]:
        """Atomically put `amount` back into the wallet. Returns the updated user, None if it is gone"""
        return await User.find_one(User.id == user_id).update(
            Inc({User.walletMoney: amount}),
            response_type=UpdateResponse.NEW_DOCUMENT,
        )


async def get_user_manager(user_db: BeanieUserDatabase = Depends(get_user_db)):
    yield UserManager(user_db)


bearer_transport = BearerTransport(tokenUrl="api/v1/auth/jwt/login")


def get_jwt_strategy() -> JWTStrategy[models.UP, models.ID]:
    return JWTStrategy(secret=SECRET, lifetime_seconds=settings.JWT_LIFETIME_SECONDS)


auth_backend = AuthenticationBackend(
    name="jwt",
    transport=bearer_transport,
    get_strategy=get_jwt_strategy,
)

fastapi_users = FastAPIUsers[User, PydanticObjectId](get_user_manager, [auth_backend])

current_active_user = fastapi_users.current_user(active=True)
super_user = fastapi_users.current_user(active=True, superuser=True)
