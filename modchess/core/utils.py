import logging

logger = logging.getLogger("modchess.search")


def format_score(score, mate_score):
    if abs(score) > mate_score // 2:
        mate_in = (mate_score - abs(score) + 1) // 2
        return f"mate {mate_in if score > 0 else -mate_in}"
    return f"cp {score}"


def log_info(d, score, evals, nodes, elapsed, best_move, mate_score):
    nps = int(nodes / elapsed) if elapsed > 0 else 0
    move_str = best_move.uci() if best_move else "-"
    logger.debug(f"info depth {d} score {format_score(score, mate_score)} evals {evals} "
                 f"nodes {nodes} nps {nps} time {int(elapsed * 1000)} move {move_str}")
