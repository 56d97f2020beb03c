import logging
from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Request
from fastapi.responses import JSONResponse

from .config import settings
from .errors import InvalidUsername, NoActiveQuestion, SessionNotFound
from .models import AnswerRequest, LoginRequest
from .session import GameEngine

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Dependencies ---
def get_session_id(
    session_id: Optional[str] = Cookie(None, alias=settings.SESSION_COOKIE_NAME)
) -> Optional[str]:
    return session_id


def get_engine(request: Request) -> GameEngine:
    return request.app.state.engine


def _session_error(e: SessionNotFound) -> JSONResponse:
    return JSONResponse({"error": str(e)}, status_code=401)


# --- Routes ---
@router.get("/api/health")
async def health(engine: GameEngine = Depends(get_engine)):
    return {
        "status": "ok",
        "items": len(engine.bank),
        "sessions": len(engine.sessions),
    }


@router.post("/api/login")
async def login(body: LoginRequest, engine: GameEngine = Depends(get_engine)):
    try:
        session = await engine.login(body.username, body.avatar_id)
    except InvalidUsername as e:
        return JSONResponse({"error": str(e)}, status_code=400)

    response = JSONResponse(session.user.model_dump())
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=session.id,
        httponly=True,
        samesite="Lax",
    )
    return response


@router.get("/api/me")
async def me(
    session_id: Optional[str] = Depends(get_session_id),
    engine: GameEngine = Depends(get_engine),
):
    try:
        return engine.get_session(session_id).user
    except SessionNotFound as e:
        return _session_error(e)


@router.get("/api/question")
async def question(
    session_id: Optional[str] = Depends(get_session_id),
    engine: GameEngine = Depends(get_engine),
):
    try:
        return await engine.next_question(session_id)
    except SessionNotFound as e:
        return _session_error(e)


@router.post("/api/answer")
async def answer(
    body: AnswerRequest,
    session_id: Optional[str] = Depends(get_session_id),
    engine: GameEngine = Depends(get_engine),
):
    try:
        return await engine.answer(session_id, body.chosen)
    except SessionNotFound as e:
        return _session_error(e)
    except NoActiveQuestion as e:
        return JSONResponse({"error": str(e)}, status_code=409)


@router.post("/api/end")
async def end(
    session_id: Optional[str] = Depends(get_session_id),
    engine: GameEngine = Depends(get_engine),
):
    try:
        summary = engine.end_session(session_id)
    except SessionNotFound as e:
        return _session_error(e)

    response = JSONResponse(summary.model_dump())
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return response


@router.get("/api/leaderboard")
async def leaderboard(
    limit: Optional[int] = None, engine: GameEngine = Depends(get_engine)
):
    return engine.top(limit)
