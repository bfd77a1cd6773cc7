# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from app.models.match import Match  # noqa: F401
from app.models.match_action_log import MatchActionLog  # noqa: F401
from app.models.match_dispute import MatchDispute  # noqa: F401
from app.models.match_participant import MatchParticipant  # noqa: F401
from app.models.partnership import Partnership  # noqa: F401
from app.models.player import Player  # noqa: F401
