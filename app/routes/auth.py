"""Authentication routes."""
from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import JSONResponse

from ..config import SESSION_COOKIE, SESSION_MAX_AGE
from ..dependencies import get_auth_service, get_db, require_user

router = APIRouter()


@router.post("/login")
async def login(
    request: Request,
    username: str = Form(...),
    password: str = Form(...),
    db=Depends(get_db)
):
    """Process login form."""
    result = await get_auth_service(db).login(username, password)
    if not result:
        return JSONResponse(
            status_code=401,
            content={"status": "unauthorized", "detail": "Invalid username or password"}
        )

    user, session_id = result
    response = JSONResponse({"status": "ok", "user": user})
    response.set_cookie(
        key=SESSION_COOKIE,
        value=session_id,
        httponly=True,
        samesite="lax",
        max_age=SESSION_MAX_AGE
    )
    return response


@router.post("/logout")
async def logout(request: Request, db=Depends(get_db)):
    """Logout and clear session."""
    require_user(request)
    session_id = request.cookies.get(SESSION_COOKIE)
    if session_id:
        await get_auth_service(db).logout(session_id)

    response = JSONResponse({"status": "ok"})
    response.delete_cookie(SESSION_COOKIE)
    return response


@router.get("/api/me")
async def me(request: Request):
    return require_user(request)
