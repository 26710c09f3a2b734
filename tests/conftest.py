import pathlib
import sys
from datetime import datetime, timezone

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

import pytest

from parkshare import create_app
from parkshare.extensions import db
from parkshare.models import Listing

TIERED = {"hour1": 15, "hour2": 12, "hour3": 10}


def at(hour, minute=0, day=1):
    """A fixed UTC instant on 2030-06-<day>."""
    return datetime(2030, 6, day, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_listing(app):
    def _make(owner_id=1, approval_mode="auto", pricing=TIERED, price_per_hour=10, is_active=True, **extra):
        listing = Listing(
            owner_id=owner_id,
            title=extra.pop("title", f"Driveway of owner {owner_id}"),
            approval_mode=approval_mode,
            pricing=pricing,
            price_per_hour=price_per_hour,
            is_active=is_active,
            **extra,
        )
        db.session.add(listing)
        db.session.commit()
        return listing

    return _make
