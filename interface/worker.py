"""Background worker that owns one Game and serves requests from a queue.

Requests are dicts ``{"id": ..., "method": ..., "args": [...] or {...}}``.
Each request produces exactly one reply, ``{"id": ..., "result": ...}`` or
``{"id": ..., "error": "..."}``, posted in request order. The first message
on the reply queue is ``{"type": "init", "build": ...}``.
"""

import itertools
import logging
import queue
import threading
from typing import Any, Dict, Optional

from interface.schemas import (
    AiMoveModel,
    BoardStateModel,
    EvalBreakdownModel,
    SearchResultModel,
    TargetModel,
)
from modchess import build_identifier
from modchess.game import Game

logger = logging.getLogger(__name__)

_STOP = object()


class EngineWorker:
    def __init__(self, game: Optional[Game] = None):
        self.game = game or Game()
        self.requests: "queue.Queue" = queue.Queue()
        self.replies: "queue.Queue" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._ids = itertools.count(1)

    # -- lifecycle ---------------------------------------------------------

    def start(self):
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._loop, name="modchess-worker", daemon=True)
        self._thread.start()
        self.replies.put({"type": "init", "build": build_identifier()})

    def stop(self, timeout: Optional[float] = None):
        if self._thread is None:
            return
        self.requests.put(_STOP)
        self._thread.join(timeout)
        self._thread = None

    def post(self, request_id, method: str, args=None):
        self.requests.put({"id": request_id, "method": method, "args": args or []})

    def call(self, method: str, *args, timeout: Optional[float] = 30.0) -> Dict[str, Any]:
        """Post one request and wait for its reply. Only for a single caller."""
        request_id = f"call-{next(self._ids)}"
        self.post(request_id, method, list(args))
        while True:
            reply = self.replies.get(timeout=timeout)
            if reply.get("id") == request_id:
                return reply

    def _loop(self):
        while True:
            request = self.requests.get()
            if request is _STOP:
                break
            reply = self.handle(request)
            self.replies.put(reply)
            if reply.get("fatal"):
                break

    # -- dispatch ----------------------------------------------------------

    def handle(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """Run one request synchronously and build its reply."""
        request_id = request.get("id")
        method = request.get("method")
        handler = getattr(self, f"_do_{method}", None) if isinstance(method, str) else None
        if handler is None:
            return {"id": request_id, "error": f"Unknown method: {method!r}"}

        args = request.get("args") or []
        try:
            if isinstance(args, dict):
                result = handler(**args)
            else:
                result = handler(*args)
        except (ValueError, TypeError) as e:
            logger.warning("%s failed: %s", method, e)
            return {"id": request_id, "error": str(e)}
        except Exception as e:
            logger.exception("Worker stopped on %s", method)
            return {"id": request_id, "error": f"Internal error: {e}", "fatal": True}
        return {"id": request_id, "result": result}

    def _state(self):
        return BoardStateModel.from_state(self.game.get_board_state()).model_dump()

    def _do_new_game(self):
        self.game = Game()
        return self._state()

    def _do_load_fen(self, fen: str):
        self.game.load_fen(fen)
        return self._state()

    def _do_get_board_state(self):
        return self._state()

    def _do_make_move(self, from_row, from_col, to_row, to_col, promotion=None):
        self.game.make_move(from_row, from_col, to_row, to_col, promotion)
        return self._state()

    def _do_make_ai_move(self):
        return AiMoveModel.from_ai_move(self.game.make_ai_move()).model_dump()

    def _do_undo_move(self):
        self.game.undo_move()
        return self._state()

    def _do_get_legal_moves_for_square(self, row, col):
        return [TargetModel.from_square_move(t).model_dump()
                for t in self.game.get_legal_moves_for_square(row, col)]

    def _do_get_eval_breakdown(self):
        return EvalBreakdownModel.from_breakdown(self.game.get_eval_breakdown()).model_dump()

    def _do_get_last_evals(self):
        return self.game.get_last_evals()

    def _do_get_hint(self, depth):
        return SearchResultModel.from_result(self.game.get_hint(depth)).model_dump()

    def _do_set_module(self, name, enabled):
        self.game.set_module(name, enabled)
        return dict(self.game.config.modules)

    def _do_set_depth(self, depth):
        self.game.set_depth(depth)
        return self.game.config.depth

    def _do_set_auto_deepen(self, enabled, min_evals):
        self.game.set_auto_deepen(enabled, min_evals)
        return {"auto_deepen": self.game.config.auto_deepen, "min_evals": self.game.config.min_evals}
