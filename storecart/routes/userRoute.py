from beanie import PydanticObjectId
from fastapi import APIRouter, Depends, HTTPException, status

from storecart.models.userModel import User
from storecart.schemas.userSchema import UserCreate, UserRead, UserUpdate, AddressUpdate, AddressRead
from storecart.crud.userService import (
    auth_backend,
    current_active_user,
    fastapi_users,
    UserService,
)

router = APIRouter()

# Define authenticated routes
router.include_router(
    fastapi_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"]
)
router.include_router(
    fastapi_users.get_register_router(UserRead, UserCreate),
    prefix="/auth",
    tags=["auth"],
)
router.include_router(
    fastapi_users.get_users_router(UserRead, UserUpdate),
    prefix="/users",
    tags=["users"],
)


def ensure_same_user(user_id: PydanticObjectId, current_user: User) -> None:
    if current_user.id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User not authorized to access this resource"
        )


@router.get("/users/{user_id}/address", response_model=AddressRead, tags=["users"])
async def get_address(
        user_id: PydanticObjectId,
        current_user: User = Depends(current_active_user)
):
    """Get the shipping address of the current user"""
    ensure_same_user(user_id, current_user)

    address = await UserService.get_user_address_by_id(user_id)
    if not address:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return address


@router.put("/users/{user_id}/address", response_model=AddressRead, tags=["users"])
async def set_address(
        user_id: PydanticObjectId,
        update: AddressUpdate,
        current_user: User = Depends(current_active_user)
):
    """Set the shipping address of the current user"""
    ensure_same_user(user_id, current_user)

    address = await UserService.set_address(current_user, update.address)
    return {"_id": str(current_user.id), "email": current_user.email, "address": address}
