"""
Test configuration and fixtures
"""
from datetime import datetime, timedelta

import pytest

from app import create_app
from extensions import db
from utils.auth_utils import create_access_token
from utils.referral_service import create_user


class FrozenClock:
    """Stands in for the server clock; tests move time forward explicitly."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def app(tmp_path):
    """App bound to a throwaway SQLite file (threads need a real file)."""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret-key',
        'JWT_SECRET': 'test-jwt-secret',
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'ledger.db'}",
        'MINING_MAX_ATTEMPTS': 5,
        'MINING_RETRY_BACKOFF': 0,
        'MINING_RESTART_RESETS_CLOCK': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def clock(monkeypatch):
    frozen = FrozenClock(datetime(2026, 1, 1, 8, 0, 0))
    monkeypatch.setattr('utils.mining_ledger.utcnow', frozen)
    return frozen


@pytest.fixture
def user_id(app):
    """An onboarded user with an idle, zero-balance mining record."""
    return create_user('miner-uid-0001', username='miner').id


@pytest.fixture
def auth_headers(app):
    def _headers(user_id):
        return {'Authorization': f'Bearer {create_access_token(user_id)}'}
    return _headers
