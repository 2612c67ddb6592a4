from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from typing import Optional

from .db import Settings, SessionTable, get_settings
from .errors import NotFoundError, ValidationError
from .logging_config import configure_logging
from .matchmaking import Matchmaker
from .questions import QuestionBank
from .schemas import (
    AnswerIn,
    AnswerOut,
    MatchIn,
    MatchOut,
    QuestionsOut,
    ResultOut,
    StartIn,
)
from .sessions import SessionRegistry
from .utils import to_epoch_seconds

router = APIRouter()


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


def get_matchmaker(request: Request) -> Matchmaker:
    return request.app.state.matchmaker


@router.get("/")
async def root():
    return {"message": "Quiz duel API running"}


@router.post("/api/match", response_model=MatchOut, response_model_exclude_none=True)
async def match(payload: MatchIn, matchmaker: Matchmaker = Depends(get_matchmaker)):
    try:
        result = await matchmaker.request_match(payload.participant_id, payload.level)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    if result.status == "queued":
        return MatchOut(status="queued", message="Waiting for another participant at the same level")
    return MatchOut(status="matched", session_id=result.session_id, opponent_id=result.opponent_id)


@router.post("/api/session/{session_id}/start", response_model=QuestionsOut)
async def start(session_id: str, payload: StartIn, registry: SessionRegistry = Depends(get_registry)):
    try:
        questions = await registry.get_questions_for_participant(session_id, payload.participant_id)
    except NotFoundError as exc:
        raise HTTPException(404, "Session not found") from exc
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return QuestionsOut(session_id=session_id, questions=questions)


@router.post("/api/session/{session_id}/answer", response_model=AnswerOut)
async def answer(session_id: str, payload: AnswerIn, registry: SessionRegistry = Depends(get_registry)):
    answered_at = to_epoch_seconds(payload.answered_at) if payload.answered_at is not None else None
    try:
        progress = await registry.record_answer(
            session_id, payload.participant_id, payload.question_index, payload.choice, answered_at
        )
    except NotFoundError as exc:
        raise HTTPException(404, "Session not found") from exc
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return AnswerOut(progress=progress)


@router.get("/api/session/{session_id}/result", response_model=ResultOut)
async def result(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    try:
        outcome = await registry.get_result(session_id)
    except NotFoundError as exc:
        raise HTTPException(404, "Session not found") from exc
    if outcome is None:
        return ResultOut(status="pending", message="Session not finished yet")
    return ResultOut(status="finished", result=outcome)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    logger = configure_logging(settings.LOG_LEVEL)

    bank = QuestionBank.from_file(settings.QUESTION_BANK_PATH) if settings.QUESTION_BANK_PATH else QuestionBank()
    registry = SessionRegistry(bank, settings, SessionTable())

    app = FastAPI(title="Quiz Duel API")
    app.state.settings = settings
    app.state.registry = registry
    app.state.matchmaker = Matchmaker(registry, settings)

    origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})

    app.include_router(router)
    logger.info("Quiz duel API ready with %d questions", len(bank))
    return app


app = create_app()
