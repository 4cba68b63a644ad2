"""Round session selection and settlement."""

from ebbinglish.rounds.selector import build_round_pool_state, select_session_words
from ebbinglish.rounds.settlement import RoundSettled, SettlementReport, apply_round_settled

__all__ = [
    "build_round_pool_state",
    "select_session_words",
    "RoundSettled",
    "SettlementReport",
    "apply_round_settled",
]
