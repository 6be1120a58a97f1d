# src/teamhub/main.py

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from teamhub.db.session import SessionLocal
from teamhub.core.config import settings
from teamhub.api.router import router
from teamhub.middleware import AuthenticationMiddleware
from teamhub.schemas.common import JsonFaildResponse
from teamhub.services.auditing.audit_queue import AuditQueue
from teamhub.services.exceptions import (
    ServiceException, NotAuthenticatedError, NotFoundError, PermissionDeniedError,
    DuplicateMemberError, OwnershipError, InvitationExpiredError, InvitationStateError,
    StorageError
)

logging.basicConfig(
    level=logging.DEBUG if settings.APP_ENV == "development" else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- 审计队列生命周期 ---
    # 后台消费者使用自己的会话写入 activity_logs，与请求事务互不影响
    app.state.audit_queue = AuditQueue(SessionLocal, maxsize=settings.AUDIT_QUEUE_MAXSIZE)
    await app.state.audit_queue.start()

    yield

    # --- 清理 ---
    logger.info("Flushing audit queue before shutdown...")
    await app.state.audit_queue.stop()

app = FastAPI(
    title="teamhub",
    lifespan=lifespan
)

app.add_middleware(AuthenticationMiddleware)

#设置允许访问的域名
origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"])

app.include_router(router)

# 业务异常 -> HTTP 状态码；按 MRO 匹配，子类优先于 ServiceException
SERVICE_ERROR_STATUS = {
    NotAuthenticatedError: status.HTTP_401_UNAUTHORIZED,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    DuplicateMemberError: status.HTTP_409_CONFLICT,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    OwnershipError: status.HTTP_409_CONFLICT,
    InvitationExpiredError: status.HTTP_410_GONE,
    InvitationStateError: status.HTTP_409_CONFLICT,
    StorageError: status.HTTP_503_SERVICE_UNAVAILABLE,
}

def _envelope(status_code: int, msg: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=JsonFaildResponse(status=status_code, msg=msg).model_dump(),
        headers=headers,
    )

@app.exception_handler(ServiceException)
async def service_exception_handler(request: Request, exc: ServiceException):
    # 处理所有来自服务层的、可预期的业务逻辑错误
    status_code = next(
        (code for cls, code in SERVICE_ERROR_STATUS.items() if isinstance(exc, cls)),
        status.HTTP_400_BAD_REQUEST,
    )
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc.__cause__)
    return _envelope(status_code, exc.message)

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # 重写 FastAPI 默认的 HTTPException 处理器，以匹配我们的响应格式
    return _envelope(exc.status_code, exc.detail, headers=exc.headers)

@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    # 这个处理器只处理真正未预料到的服务器内部错误
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("teamhub.main:app", host=settings.APP_HOST, port=settings.APP_PORT)
