# src/teamhub/schemas/common.py

from pydantic import BaseModel
from typing import Generic, TypeVar, Optional

T = TypeVar('T')

class JsonResponse(BaseModel, Generic[T]):
    data: T
    msg: str = "success"
    status: int = 200

class JsonFaildResponse(BaseModel, Generic[T]):
    data: Optional[T] = None
    msg: str = "error"
    status: int = 400

class MsgResponse(BaseModel):
    msg: str = "success"
