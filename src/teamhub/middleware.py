# src/teamhub/middleware.py

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# 中间件只从 request 中提取凭证，不校验也不访问数据库
def _extract_bearer_token(request: Request) -> None:
    """Strategy for extracting a JWT Bearer token and placing it in state."""
    header = request.headers.get("Authorization")
    if header and header.startswith("Bearer "):
        setattr(request.state, "token", header.split(" ", 1)[1].strip() or None)

class AuthenticationMiddleware(BaseHTTPMiddleware):
    AUTH_EXTRACTORS = [
        _extract_bearer_token,
    ]

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        # 为每个请求重置状态
        setattr(request.state, "token", None)

        for extractor in self.AUTH_EXTRACTORS:
            extractor(request)

        return await call_next(request)
