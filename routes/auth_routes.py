from fastapi import APIRouter, Depends

from dataBase import get_db
from models.login_model import LoginUser
from models.register_model import RegisterUser
from services import user_service
from utils import get_current_user_id

router = APIRouter(prefix="/auth", tags=["auth"])

@router.post("/register")
async def register_user(user: RegisterUser, db=Depends(get_db)) -> dict:
    return await user_service.register(db, user)

@router.post("/login")
async def login_user(user: LoginUser, db=Depends(get_db)) -> dict:
    return await user_service.login(db, user)

@router.get("/me")
async def current_user(user_id: str = Depends(get_current_user_id), db=Depends(get_db)) -> dict:
    return await user_service.get_profile(db, user_id)
