"""FastAPI REST interface for a single in-process game."""

import logging
import threading
from typing import List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from interface.schemas import (
    AiMoveModel,
    BoardStateModel,
    EvalBreakdownModel,
    SearchResultModel,
    TargetModel,
)
from modchess import __version__, build_identifier
from modchess.config import CONFIG
from modchess.game import Game

logger = logging.getLogger(__name__)

app = FastAPI(title=CONFIG.ui.engine_name, version=__version__)

# One game shared by every request; the lock serialises access to it.
game = Game()
_game_lock = threading.Lock()


class FenRequest(BaseModel):
    fen: str


class MoveRequest(BaseModel):
    from_row: int
    from_col: int
    to_row: int
    to_col: int
    promotion: Optional[str] = None


class HintRequest(BaseModel):
    depth: Optional[int] = None


class ModuleRequest(BaseModel):
    name: str
    enabled: bool


class DepthRequest(BaseModel):
    depth: int


class AutoDeepenRequest(BaseModel):
    enabled: bool
    min_evals: int


def _bad_request(e: ValueError) -> HTTPException:
    logger.info("Rejected request: %s", e)
    return HTTPException(status_code=400, detail=str(e))


def _state() -> BoardStateModel:
    return BoardStateModel.from_state(game.get_board_state())


@app.get("/version")
def version():
    return {"version": __version__, "build": build_identifier()}


@app.get("/board", response_model=BoardStateModel)
def get_board():
    with _game_lock:
        return _state()


@app.post("/new", response_model=BoardStateModel)
def new_game():
    with _game_lock:
        game.new_game()
        return _state()


@app.post("/position", response_model=BoardStateModel)
def set_position(req: FenRequest):
    with _game_lock:
        try:
            game.load_fen(req.fen)
        except ValueError as e:
            raise _bad_request(e)
        return _state()


@app.post("/move", response_model=BoardStateModel)
def make_move(req: MoveRequest):
    with _game_lock:
        try:
            game.make_move(req.from_row, req.from_col, req.to_row, req.to_col, req.promotion)
        except ValueError as e:
            raise _bad_request(e)
        return _state()


@app.post("/ai-move", response_model=AiMoveModel)
def make_ai_move():
    with _game_lock:
        return AiMoveModel.from_ai_move(game.make_ai_move())


@app.post("/undo", response_model=BoardStateModel)
def undo_move():
    with _game_lock:
        game.undo_move()
        return _state()


@app.get("/moves/{row}/{col}", response_model=List[TargetModel])
def legal_moves_for_square(row: int, col: int):
    with _game_lock:
        try:
            targets = game.get_legal_moves_for_square(row, col)
        except ValueError as e:
            raise _bad_request(e)
        return [TargetModel.from_square_move(t) for t in targets]


@app.get("/eval", response_model=EvalBreakdownModel)
def eval_breakdown():
    with _game_lock:
        return EvalBreakdownModel.from_breakdown(game.get_eval_breakdown())


@app.get("/last-evals")
def last_evals():
    with _game_lock:
        return {"evals": game.get_last_evals()}


@app.post("/hint", response_model=SearchResultModel)
def hint(req: HintRequest = HintRequest()):
    with _game_lock:
        depth = req.depth if req.depth is not None else game.config.depth
        try:
            result = game.get_hint(depth)
        except ValueError as e:
            raise _bad_request(e)
        return SearchResultModel.from_result(result)


@app.post("/config/module")
def set_module(req: ModuleRequest):
    with _game_lock:
        try:
            game.set_module(req.name, req.enabled)
        except ValueError as e:
            raise _bad_request(e)
        return dict(game.config.modules)


@app.post("/config/depth")
def set_depth(req: DepthRequest):
    with _game_lock:
        try:
            game.set_depth(req.depth)
        except ValueError as e:
            raise _bad_request(e)
        return {"depth": game.config.depth}


@app.post("/config/auto-deepen")
def set_auto_deepen(req: AutoDeepenRequest):
    with _game_lock:
        try:
            game.set_auto_deepen(req.enabled, req.min_evals)
        except ValueError as e:
            raise _bad_request(e)
        return {"auto_deepen": game.config.auto_deepen, "min_evals": game.config.min_evals}


def main():
    import uvicorn

    logging.basicConfig(level=CONFIG.log_level)
    uvicorn.run(app, host="127.0.0.1", port=CONFIG.ui.api_port)


if __name__ == "__main__":
    main()
