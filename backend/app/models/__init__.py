from app.models.match import Match
from app.models.match_action_log import MatchActionLog
from app.models.match_dispute import MatchDispute
from app.models.match_participant import MatchParticipant
from app.models.partnership import Partnership
from app.models.player import Player

__all__ = [
    "Match",
    "MatchParticipant",
    "MatchDispute",
    "MatchActionLog",
    "Partnership",
    "Player",
]
