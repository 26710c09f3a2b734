from sqlalchemy import BigInteger, Integer

from parkshare.extensions import db
from parkshare.utils.clock import utcnow

# BIGINT on PostgreSQL, INTEGER on SQLite so autoincrement works.
PKType = BigInteger().with_variant(Integer, "sqlite")


class TimestampMixin:
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def touch(self, now=None):
        """Stamp ``updated_at`` with the caller's clock instead of the wall clock."""
        self.updated_at = now or utcnow()
