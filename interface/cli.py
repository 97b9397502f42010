"""Play against the engine in a terminal."""

import logging

from modchess.config import CONFIG
from modchess.core.board import Color, parse_square
from modchess.errors import InvalidSquareError
from modchess.game import Game

HELP = "Commands: a move like e2e4 or e7e8n, 'undo', 'hint', 'eval', 'quit'"


def parse_move(text: str):
    """'e2e4' / 'e7e8q' -> (from_row, from_col, to_row, to_col, promotion)."""
    text = text.strip().lower()
    if len(text) not in (4, 5):
        raise ValueError(f"Cannot read move {text!r}")
    try:
        fr = parse_square(text[:2])
        to = parse_square(text[2:4])
    except InvalidSquareError as e:
        raise ValueError(f"Cannot read move {text!r}") from e
    promotion = text[4] if len(text) == 5 else None
    return fr >> 3, fr & 7, to >> 3, to & 7, promotion


def run(game: Game = None, human: Color = None):
    game = game or Game()
    if human is None:
        human = Color.WHITE if CONFIG.ui.human_plays_white else Color.BLACK
    print(HELP)

    while True:
        state = game.get_board_state()
        print(game.position)
        print("----------------------------")
        if state.game_over:
            break

        if state.turn != human:
            result = game.make_ai_move()
            print(f"Engine plays: {result.move} | Eval: {result.search.score} "
                  f"| depth {result.search.depth} | {result.search.evals} evals")
            continue

        command = input("Your move: ").strip()
        if command == "quit":
            return
        if command == "undo":
            # take back the engine reply and our own move
            game.undo_move()
            game.undo_move()
            continue
        if command == "hint":
            hint = game.get_hint(game.config.depth)
            print(f"Hint: {hint.move} ({hint.score})")
            continue
        if command == "eval":
            for name, value in game.get_eval_breakdown().as_dict().items():
                print(f"  {name:15} {value:+d}")
            continue
        try:
            game.make_move(*parse_move(command))
        except ValueError as e:
            print(f"{e}, try again.")

    print("Game Over")
    print(f"Result: {state.result}")


def main():
    logging.basicConfig(level=CONFIG.log_level)
    run()


if __name__ == "__main__":
    main()
