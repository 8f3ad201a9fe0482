from fastapi import APIRouter, Depends
from typing import List

from dataBase import get_db
from models.exchange_models import CreateRequestModel, StatusUpdateModel
from services import request_service
from utils import get_current_user_id

router = APIRouter(prefix="/requests", tags=["requests"])

@router.post("")
async def create_request(
    body: CreateRequestModel,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_db),
) -> dict:
    return await request_service.create_request(
        db,
        user_id,
        body.bookId,
        message=body.message,
        exchange_book_id=body.exchangeBookId,
        exchange_message=body.exchangeMessage,
    )

@router.get("/received")
async def received_requests(user_id: str = Depends(get_current_user_id), db=Depends(get_db)) -> List[dict]:
    return await request_service.list_received(db, user_id)

@router.get("/sent")
async def sent_requests(user_id: str = Depends(get_current_user_id), db=Depends(get_db)) -> List[dict]:
    return await request_service.list_sent(db, user_id)

@router.get("/{request_id}")
async def get_request(request_id: str, user_id: str = Depends(get_current_user_id), db=Depends(get_db)) -> dict:
    return await request_service.get_request(db, request_id, user_id)

@router.put("/{request_id}/status")
async def update_request_status(
    request_id: str,
    body: StatusUpdateModel,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_db),
) -> dict:
    return await request_service.update_status(db, request_id, user_id, body.status)

@router.delete("/{request_id}")
async def cancel_request(request_id: str, user_id: str = Depends(get_current_user_id), db=Depends(get_db)) -> dict:
    await request_service.cancel_request(db, request_id, user_id)
    return {"message": "Request cancelled"}
