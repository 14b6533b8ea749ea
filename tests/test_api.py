"""
Integration tests for the HTTP endpoints.
"""
import json

import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from extensions import db
from models import MiningRecord
from utils import mining_ledger
from utils.mining_service import calculate_reward


def body(response):
    return json.loads(response.data)


class TestHealth:

    def test_health_check(self, client):
        response = client.get('/')
        assert response.status_code == 200
        assert body(response)['status'] == 'healthy'


class TestUsersEndpoints:

    def test_onboard(self, client, auth_headers):
        response = client.post('/api/users', json={'username': 'bob'}, headers=auth_headers('bob-uid-0001'))

        assert response.status_code == 201
        data = body(response)
        assert data['success'] is True
        assert data['user']['user_id'] == 'bob-uid-0001'
        assert data['user']['referral_code'] == 'BOB-UI'

    def test_onboard_twice_conflicts(self, client, auth_headers):
        headers = auth_headers('bob-uid-0001')
        client.post('/api/users', json={}, headers=headers)

        response = client.post('/api/users', json={}, headers=headers)

        assert response.status_code == 409
        assert body(response)['error'] == 'user_exists'

    def test_onboard_with_oversized_referral_code(self, client, auth_headers):
        response = client.post('/api/users', json={'referred_by': 'Z' * 40},
                               headers=auth_headers('carol-uid-0001'))

        assert response.status_code == 201
        assert body(response)['user']['referred_by'] is None

        me = body(client.get('/api/users/me', headers=auth_headers('carol-uid-0001')))
        assert me['profile']['referred_by'] is None

    def test_onboard_requires_token(self, client):
        response = client.post('/api/users', json={})

        assert response.status_code == 401
        assert body(response)['error'] == 'unauthenticated'

    def test_bad_token(self, client):
        response = client.get('/api/users/me', headers={'Authorization': 'Bearer not-a-jwt'})

        assert response.status_code == 401

    def test_me(self, client, clock, user_id, auth_headers):
        response = client.get('/api/users/me', headers=auth_headers(user_id))

        assert response.status_code == 200
        data = body(response)
        assert data['profile']['user_id'] == user_id
        assert data['mining']['mining_active'] is False
        assert data['referrals']['total_referred'] == 0

    def test_me_before_onboarding(self, client, auth_headers):
        response = client.get('/api/users/me', headers=auth_headers('nobody'))

        assert response.status_code == 404


class TestMiningEndpoints:

    def test_start_claim_flow(self, client, clock, user_id, auth_headers):
        headers = auth_headers(user_id)

        response = client.post(f'/api/mining/{user_id}/start', headers=headers)
        assert response.status_code == 200
        assert body(response)['mining']['mining_active'] is True
        assert body(response)['mining']['last_start'] == clock.now.isoformat()

        clock.advance(43200)
        status = body(client.get(f'/api/mining/{user_id}/status', headers=headers))
        assert float(status['claimable_reward']) == pytest.approx(2.4)
        assert float(status['projected_balance']) == pytest.approx(2.4)
        assert float(status['daily_max']) == pytest.approx(4.8)

        response = client.post(f'/api/mining/{user_id}/claim', headers=headers)
        assert response.status_code == 200
        assert float(body(response)['reward']) == pytest.approx(2.4)

        response = client.post(f'/api/mining/{user_id}/claim', headers=headers)
        assert float(body(response)['reward']) == 0

        status = body(client.get(f'/api/mining/{user_id}/status', headers=headers))
        assert float(status['balance']) == pytest.approx(2.4)
        assert status['mining_active'] is False
        assert status['last_start'] is None
        assert status['last_claim'] == clock.now.isoformat()

    def test_stop_keeps_last_start(self, client, clock, user_id, auth_headers):
        headers = auth_headers(user_id)
        started = body(client.post(f'/api/mining/{user_id}/start', headers=headers))['mining']['last_start']
        clock.advance(600)

        response = client.post(f'/api/mining/{user_id}/stop', headers=headers)

        assert response.status_code == 200
        mining = body(response)['mining']
        assert mining['mining_active'] is False
        assert mining['last_start'] == started
        assert float(mining['balance']) == 0

    def test_other_users_record_is_rejected(self, client, clock, user_id, auth_headers):
        response = client.post(f'/api/mining/{user_id}/claim', headers=auth_headers('intruder'))

        assert response.status_code == 401
        assert body(response)['error'] == 'unauthenticated'

    def test_missing_record(self, client, clock, auth_headers):
        response = client.post('/api/mining/ghost/start', headers=auth_headers('ghost'))

        assert response.status_code == 404
        assert body(response)['error'] == 'record_not_found'

    def test_requires_token(self, client, user_id):
        response = client.post(f'/api/mining/{user_id}/start')

        assert response.status_code == 401

    def test_claim_conflict_is_retryable_503(self, app, client, clock, user_id, auth_headers, monkeypatch):
        app.config['MINING_MAX_ATTEMPTS'] = 2
        headers = auth_headers(user_id)
        client.post(f'/api/mining/{user_id}/start', headers=headers)
        clock.advance(43200)
        records = MiningRecord.__table__

        def always_raced(start_time, now):
            with db.engine.begin() as conn:
                conn.execute(
                    update(records)
                    .where(records.c.user_id == user_id)
                    .values(version=records.c.version + 1)
                )
            return calculate_reward(start_time, now)

        monkeypatch.setattr(mining_ledger, 'calculate_reward', always_raced)

        response = client.post(f'/api/mining/{user_id}/claim', headers=headers)

        assert response.status_code == 503
        data = body(response)
        assert data['success'] is False
        assert data['error'] == 'storage_conflict'
        assert data['retryable'] is True
        assert 'reward' not in data

    def test_claim_storage_failure_is_retryable_503(self, app, client, clock, user_id, auth_headers,
                                                    monkeypatch):
        app.config['MINING_MAX_ATTEMPTS'] = 2
        headers = auth_headers(user_id)
        client.post(f'/api/mining/{user_id}/start', headers=headers)
        clock.advance(43200)

        def broken(start_time, now):
            raise OperationalError("UPDATE mining_records", {}, Exception("disk I/O error"))

        monkeypatch.setattr(mining_ledger, 'calculate_reward', broken)

        response = client.post(f'/api/mining/{user_id}/claim', headers=headers)

        assert response.status_code == 503
        data = body(response)
        assert data['error'] == 'storage_unavailable'
        assert data['retryable'] is True
        assert 'reward' not in data

        monkeypatch.setattr(mining_ledger, 'calculate_reward', calculate_reward)
        status = body(client.get(f'/api/mining/{user_id}/status', headers=headers))
        assert float(status['balance']) == 0
        assert status['mining_active'] is True


class TestReferralEndpoints:

    def test_bind_and_stats(self, client, auth_headers):
        client.post('/api/users', json={}, headers=auth_headers('inviter-0001'))
        client.post('/api/users', json={}, headers=auth_headers('invitee-0001'))

        response = client.post('/api/referrals/bind', json={'referral_code': 'INVITE'},
                               headers=auth_headers('invitee-0001'))
        assert response.status_code == 200
        assert body(response)['bound'] is True

        response = client.post('/api/referrals/bind', json={'referral_code': 'INVITE'},
                               headers=auth_headers('invitee-0001'))
        assert body(response)['bound'] is False

        stats = body(client.get('/api/referrals/stats', headers=auth_headers('inviter-0001')))['data']
        assert stats['total_referred'] == 1
        assert stats['referred_users'] == ['invitee-0001']

    def test_bind_requires_code(self, client, user_id, auth_headers):
        response = client.post('/api/referrals/bind', json={}, headers=auth_headers(user_id))

        assert response.status_code == 400
