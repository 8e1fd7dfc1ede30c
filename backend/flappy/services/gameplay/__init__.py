"""Gameplay verification pipeline.

Session ids, event-log checksums, plausibility checks, the session
lifecycle and the best-score ledger.
"""

from .tokens import start_session_token
from .checksum import events_checksum
from .verifier import GameplayPolicy, Verdict, verify_gameplay
from .sessions import GameSessionManager
from .ledger import ScoreLedger
