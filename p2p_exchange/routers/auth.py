from fastapi import APIRouter, Depends

from p2p_exchange.db.dal import Database
from p2p_exchange.models.user import SignupIn, SignupOut
from p2p_exchange.services.accounts import register_user
from .deps import get_db

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post(
    "/signup",
    response_model=SignupOut,
    status_code=201,
    summary="Register a user (status 'pending' until KYC)",
)
def signup(payload: SignupIn, db: Database = Depends(get_db)):
    user_id = register_user(
        db,
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        password=payload.password,
    )
    return SignupOut(user_id=user_id, message="User created successfully")
