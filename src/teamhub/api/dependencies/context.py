# src/teamhub/api/dependencies/context.py

from fastapi import Depends, HTTPException, status, Request
from sqlalchemy.ext.asyncio import AsyncSession

from teamhub.core.context import AppContext
from teamhub.db.session import get_db
from teamhub.api.dependencies.authentication import get_auth

# --- 步骤1: 基础上下文构建器 ---
async def get_base_context(
    request: Request,
    db: AsyncSession = Depends(get_db)
) -> AppContext:
    """
    只负责构建包含全局共享依赖的 AppContext。
    它的 'auth' 字段总是 None。
    """
    return AppContext(
        db=db,
        auth=None,
        audit_queue=getattr(request.app.state, "audit_queue", None),
    )

# --- 步骤2: 公共/可选认证的上下文 ---
async def get_public_context(
    request: Request,
    context: AppContext = Depends(get_base_context),
) -> AppContext:
    try:
        context.auth = await get_auth(request)
    except HTTPException as e:
        if e.status_code != status.HTTP_401_UNAUTHORIZED:
            raise
        context.auth = None
    return context

# --- 步骤3: 强制认证的上下文 ---
async def require_auth_context(
    request: Request,
    context: AppContext = Depends(get_base_context),
) -> AppContext:
    """
    强制要求 get_auth 成功；任何 401 都会在此中断请求。
    """
    context.auth = await get_auth(request)
    return context

# 用于公共路由或认证可选路由
PublicContextDep = Depends(get_public_context)
# 用于需要强制认证的私有路由
AuthContextDep = Depends(require_auth_context)
