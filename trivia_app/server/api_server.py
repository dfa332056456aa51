"""FastAPI server exposing a single player's round over JSON endpoints."""

from __future__ import annotations

from dataclasses import asdict
from threading import Thread
from typing import Literal

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel
import uvicorn

from trivia_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from trivia_app.core.models import QuestionView, RoundPhase
from trivia_app.core.progress import CategoryStats
from trivia_app.core.round_manager import MODE_CATEGORY, MODE_DAILY, MODE_REVIEW, RoundManager


class StartRoundPayload(BaseModel):
    """Payload schema for starting a round."""

    mode: Literal["category", "daily", "review"] = MODE_CATEGORY
    category_id: str | None = None
    no_timer: bool = False


class AnswerPayload(BaseModel):
    """Payload schema for submitted answers."""

    choice_index: int


def _get_round_manager_dependency(round_manager: RoundManager):
    def dependency() -> RoundManager:
        return round_manager

    return dependency


def _view_to_dict(view: QuestionView | None) -> dict[str, object] | None:
    if view is None:
        return None
    return {
        "prompt": view.prompt,
        "choices": list(view.choices),
        "question_number": view.question_number,
        "total_questions": view.total_questions,
    }


def _round_state(manager: RoundManager) -> dict[str, object]:
    return {
        "phase": manager.get_phase().value,
        "mode": manager.get_mode(),
        "question": _view_to_dict(manager.get_current_question()),
        "score": manager.get_score(),
        "streak": manager.get_streak(),
        "seconds_remaining": manager.get_seconds_remaining() if manager.is_timer_enabled() else None,
    }


def _category_stats_to_dict(stats: CategoryStats) -> dict[str, object]:
    return {**asdict(stats), "accuracy": stats.accuracy, "stars": stats.stars}


def create_api_app(round_manager: RoundManager) -> FastAPI:
    """Create a FastAPI application wired to the provided round manager."""
    app = FastAPI(title="TriviaRound API", version="0.1.0")
    round_manager_dep = _get_round_manager_dependency(round_manager)

    @app.get("/categories")
    def list_categories(manager: RoundManager = Depends(round_manager_dep)) -> list[dict[str, object]]:
        return [asdict(meta) for meta in manager.get_categories()]

    @app.post("/round/start", status_code=201)
    def start_round(
        payload: StartRoundPayload,
        manager: RoundManager = Depends(round_manager_dep),
    ) -> dict[str, object]:
        if payload.mode == MODE_DAILY:
            if manager.has_played_daily():
                raise HTTPException(status_code=409, detail="Today's challenge has already been played.")
            manager.start_daily_round(no_timer=payload.no_timer)
        elif payload.mode == MODE_REVIEW:
            if manager.start_review_round() is None:
                raise HTTPException(status_code=409, detail="No questions available for review.")
        else:
            if not payload.category_id:
                raise HTTPException(status_code=422, detail="category_id is required for category rounds.")
            try:
                manager.start_category_round(payload.category_id, no_timer=payload.no_timer)
            except KeyError as exc:
                raise HTTPException(status_code=404, detail=str(exc)) from exc
        return _round_state(manager)

    @app.get("/round/question")
    def get_question(manager: RoundManager = Depends(round_manager_dep)) -> dict[str, object]:
        return _round_state(manager)

    @app.post("/round/answer")
    def submit_answer(
        payload: AnswerPayload,
        manager: RoundManager = Depends(round_manager_dep),
    ) -> dict[str, object]:
        outcome = manager.submit_answer(payload.choice_index)
        if outcome is None:
            raise HTTPException(status_code=409, detail="No question is awaiting an answer.")
        return {**asdict(outcome), "score": manager.get_score()}

    @app.post("/round/next")
    def next_question(manager: RoundManager = Depends(round_manager_dep)) -> dict[str, object]:
        if manager.get_phase() is not RoundPhase.ANSWERED:
            raise HTTPException(status_code=409, detail="The current question has not been answered.")
        view = manager.next_question()
        result = manager.get_round_result()
        round_progress = manager.get_last_round_progress()
        return {
            **_round_state(manager),
            "question": _view_to_dict(view),
            "result": asdict(result) if result is not None else None,
            "progress": asdict(round_progress) if round_progress is not None else None,
        }

    @app.get("/round/result")
    def get_result(manager: RoundManager = Depends(round_manager_dep)) -> dict[str, object]:
        result = manager.get_round_result()
        if result is None:
            raise HTTPException(status_code=409, detail="The round is not complete.")
        return asdict(result)

    @app.get("/progress")
    def get_progress(manager: RoundManager = Depends(round_manager_dep)) -> dict[str, object]:
        categories = manager.get_progress().categories
        return {
            **asdict(manager.get_player_stats()),
            "daily_score": manager.get_daily_result(),
            "categories": {category_id: _category_stats_to_dict(stats) for category_id, stats in categories.items()},
        }

    @app.get("/review/weaknesses")
    def get_weaknesses(manager: RoundManager = Depends(round_manager_dep)) -> list[dict[str, object]]:
        return [asdict(entry) for entry in manager.get_weaknesses()]

    return app


def start_api_server(
    round_manager: RoundManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> Thread:
    """Start the FastAPI server in a background daemon thread."""
    app = create_api_app(round_manager)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)

    def run_server() -> None:
        server.run()

    thread = Thread(target=run_server, name="TriviaApiServer", daemon=True)
    thread.start()
    return thread
