from typing import Optional

from sqlalchemy import exc as sa_exc
from sqlalchemy import update

from flappy.models import Score, utcnow


class ScoreLedger:
    """One best-score row per user, replaced only by a better verified score."""

    def __init__(self, db_session, permissive: bool = False):
        self.session = db_session
        self.permissive = permissive

    def best_for(self, user_id: int) -> Optional[Score]:
        return self.session.query(Score).filter_by(user_id=user_id).first()

    def _replace_if_better(self, user_id: int, score: int, session_id: str) -> bool:
        beaten = Score.score <= score if self.permissive else Score.score < score
        result = self.session.execute(
            update(Score)
            .where(Score.user_id == user_id, beaten)
            .values(score=score, session_id=session_id, verified=True, created_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return result.rowcount == 1

    def record_if_best(self, user_id: int, score: int, session_id: str) -> bool:
        """Store ``score`` if it beats the user's best. Returns True when written."""
        if self._replace_if_better(user_id, score, session_id):
            return True
        if self.best_for(user_id) is not None:
            return False

        self.session.add(Score(user_id=user_id, score=score, session_id=session_id, verified=True))
        try:
            self.session.commit()
        except sa_exc.IntegrityError:
            # Another request inserted first
            self.session.rollback()
            return self._replace_if_better(user_id, score, session_id)
        return True
