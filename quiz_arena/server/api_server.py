"""FastAPI server exposing the quiz competition to students and administrators."""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from fastapi import Depends, FastAPI, HTTPException
import uvicorn

from quiz_arena.constants.about import APP_ABOUT_TEXT, APP_NAME, APP_VERSION
from quiz_arena.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from quiz_arena.core.errors import OutOfRangeError, PersistenceFailure, StaleSubmissionError
from quiz_arena.core.models import Identity
from quiz_arena.core.quiz_manager import QuizManager
from quiz_arena.server.identity import get_identity, require_admin, require_superadmin
from quiz_arena.server.schemas import (
    AdminQuestionOut,
    AdvancePayload,
    AnswerOut,
    AnswerPayload,
    LifecycleOut,
    ResultOut,
    SessionOut,
)

logger = logging.getLogger(__name__)


def _get_quiz_manager_dependency(quiz_manager: QuizManager):
    def dependency() -> QuizManager:
        return quiz_manager

    return dependency


def _admin(identity: Identity = Depends(get_identity)) -> Identity:
    return require_admin(identity)


def _superadmin(identity: Identity = Depends(get_identity)) -> Identity:
    return require_superadmin(identity)


def create_api_app(quiz_manager: QuizManager) -> FastAPI:
    """Create a FastAPI application wired to the provided quiz manager."""
    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        quiz_manager.shutdown()

    app = FastAPI(
        title=f"{APP_NAME} API",
        version=APP_VERSION,
        description=APP_ABOUT_TEXT,
        lifespan=lifespan,
    )
    quiz_manager_dep = _get_quiz_manager_dependency(quiz_manager)

    # --- Lifecycle ---

    @app.get("/api/quiz/settings", response_model=LifecycleOut)
    def get_quiz_settings(manager: QuizManager = Depends(quiz_manager_dep)) -> LifecycleOut:
        return LifecycleOut.from_snapshot(manager.get_lifecycle())

    @app.post("/api/quiz/start", response_model=LifecycleOut)
    def start_quiz(
        identity: Identity = Depends(_admin),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> LifecycleOut:
        logger.info("Quiz start requested by %s", identity.user_id)
        return LifecycleOut.from_snapshot(manager.start_quiz())

    @app.post("/api/quiz/complete", response_model=LifecycleOut)
    def complete_quiz(
        identity: Identity = Depends(_admin),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> LifecycleOut:
        logger.info("Quiz completion requested by %s", identity.user_id)
        return LifecycleOut.from_snapshot(manager.complete_quiz())

    @app.post("/api/quiz/reset", response_model=LifecycleOut)
    def reset_quiz(
        identity: Identity = Depends(_superadmin),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> LifecycleOut:
        logger.info("Quiz reset requested by %s", identity.user_id)
        try:
            snapshot = manager.reset_quiz()
        except PersistenceFailure as exc:
            raise HTTPException(status_code=503, detail="Failed to reset quiz") from exc
        return LifecycleOut.from_snapshot(snapshot)

    # --- Student session ---

    @app.get("/api/quiz/session", response_model=SessionOut)
    def get_session(
        identity: Identity = Depends(get_identity),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> SessionOut:
        try:
            view = manager.join_session(identity.user_id)
        except PersistenceFailure as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return SessionOut.from_view(view)

    @app.post("/api/quiz/answers", response_model=SessionOut)
    def submit_answer(
        payload: AnswerPayload,
        identity: Identity = Depends(get_identity),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> SessionOut:
        try:
            view = manager.record_answer(identity.user_id, payload.question_id, payload.selected_option)
        except StaleSubmissionError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return SessionOut.from_view(view)

    @app.get("/api/quiz/answers", response_model=list[AnswerOut])
    def list_answers(
        identity: Identity = Depends(get_identity),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> list[AnswerOut]:
        try:
            records = manager.list_answers(identity.user_id)
        except PersistenceFailure as exc:
            raise HTTPException(status_code=503, detail="Failed to fetch answers") from exc
        return [AnswerOut.from_record(record) for record in records]

    @app.post("/api/quiz/advance", response_model=SessionOut)
    def advance(
        payload: AdvancePayload,
        identity: Identity = Depends(get_identity),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> SessionOut:
        try:
            view = manager.advance(identity.user_id, payload.question_id)
        except StaleSubmissionError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        except OutOfRangeError as exc:
            logger.error("Advance past the last question for %s", identity.user_id)
            raise HTTPException(status_code=500, detail="Internal server error") from exc
        except PersistenceFailure as exc:
            # Progress is kept; the session view carries the advisory.
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return SessionOut.from_view(view)

    # --- Results ---

    @app.post("/api/results/retry", response_model=ResultOut, status_code=201)
    def retry_result(
        identity: Identity = Depends(get_identity),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> ResultOut:
        try:
            result = manager.retry_result(identity.user_id)
        except StaleSubmissionError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        except PersistenceFailure as exc:
            raise HTTPException(status_code=503, detail="Failed to save result") from exc
        return ResultOut.from_result(result)

    @app.get("/api/results", response_model=list[ResultOut])
    def list_results(
        identity: Identity = Depends(get_identity),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> list[ResultOut]:
        try:
            results = manager.list_results()
        except PersistenceFailure as exc:
            raise HTTPException(status_code=503, detail="Failed to fetch results") from exc
        # Students only see who they are on the leaderboard.
        return [
            ResultOut.from_result(
                result,
                hide_user=not identity.is_admin and result.user_id != identity.user_id,
            )
            for result in results
        ]

    @app.get("/api/results/me", response_model=ResultOut)
    def get_my_result(
        identity: Identity = Depends(get_identity),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> ResultOut:
        try:
            result = manager.get_result(identity.user_id)
        except PersistenceFailure as exc:
            raise HTTPException(status_code=503, detail="Failed to fetch result") from exc
        if result is None:
            raise HTTPException(status_code=404, detail="No result found")
        return ResultOut.from_result(result)

    # --- Question bank ---

    @app.get("/api/questions", response_model=list[AdminQuestionOut])
    def list_questions(
        identity: Identity = Depends(_admin),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> list[AdminQuestionOut]:
        return [
            AdminQuestionOut(
                id=question.id,
                question_text=question.question_text,
                options=question.options,
                correct_option=question.correct_option,
            )
            for question in manager.list_questions()
        ]

    return app


def run_api_server(
    quiz_manager: QuizManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> None:
    """Serve the API in the current thread until interrupted."""
    app = create_api_app(quiz_manager)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    uvicorn.Server(config).run()

