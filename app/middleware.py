"""Application middleware."""
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .config import SESSION_COOKIE
from .infrastructure.repositories import AsyncSessionRepository


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware to check authentication on all routes.

    A valid session cookie puts ``{id, username, role}`` on
    ``request.state.user``. Everything outside the public paths answers 401
    without one.
    """

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        settings = request.app.state.settings

        request.state.user = None
        session_id = request.cookies.get(SESSION_COOKIE)
        if session_id:
            pool = request.app.state.pool
            conn = await pool.acquire()
            try:
                session = await AsyncSessionRepository(conn).get_valid(session_id)
            finally:
                await pool.release(conn)
            if session:
                request.state.user = {
                    "id": session["user_id"],
                    "username": session["username"],
                    "role": session["role"],
                }

        if request.state.user is None and path not in settings.public_paths:
            return JSONResponse(status_code=401, content={"status": "unauthorized", "detail": "Not authenticated"})

        return await call_next(request)
