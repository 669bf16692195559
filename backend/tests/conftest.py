import os
import sys
# ensure backend package is on path for tests
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import datetime
import itertools
import json

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from crowdfund import auth, user_models
from crowdfund.config import Settings
from crowdfund.database import Base, get_db
from crowdfund.mailer import Mailer
from crowdfund.main import create_app
from crowdfund.payment_gateway import RazorpayGateway

ORDER_ID = 'order_Test123'


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    monkeypatch.setattr(auth, 'BCRYPT_ROUNDS', 4)


@pytest.fixture
def settings():
    return Settings(
        environment='test',
        jwt_secret='test-jwt-secret',
        razorpay_key_id='rzp_test_key',
        razorpay_key_secret='rzp_test_secret',
        mail_api_key='re_test_key',
        mail_from='CrowdFundIn <noreply@example.com>',
        frontend_url='http://frontend.test',
    )


@pytest.fixture
def engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def gateway_calls():
    return []


@pytest.fixture
def gateway(settings, gateway_calls):
    def handler(request):
        body = json.loads(request.content)
        gateway_calls.append(body)
        return httpx.Response(200, json={
            'id': ORDER_ID,
            'entity': 'order',
            'amount': body['amount'],
            'currency': body['currency'],
            'receipt': body['receipt'],
            'status': 'created',
        })
    return RazorpayGateway.from_settings(settings, transport=httpx.MockTransport(handler))


@pytest.fixture
def outbox():
    return []


@pytest.fixture
def mailer(settings, outbox):
    def handler(request):
        if request.method == 'GET':
            return httpx.Response(200, json={'data': []})
        outbox.append(json.loads(request.content))
        return httpx.Response(200, json={'id': f'email_{len(outbox)}'})
    return Mailer.from_settings(settings, transport=httpx.MockTransport(handler))


@pytest.fixture
def app(settings, gateway, mailer, session_factory):
    app = create_app(settings, gateway=gateway, mailer=mailer)

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def register(client):
    counter = itertools.count(1)

    def _register(role='donor', password='secret123'):
        n = next(counter)
        email = f'{role}{n}@example.com'
        resp = client.post('/api/auth/register', json={
            'name': f'{role.title()} {n}',
            'email': email,
            'password': password,
            'role': role,
        })
        assert resp.status_code == 201, resp.text
        data = resp.json()
        return {
            'id': data['user']['id'],
            'email': email,
            'headers': {'Authorization': f"Bearer {data['token']}"},
        }

    return _register


@pytest.fixture
def make_admin(register, session_factory):
    def _make_admin():
        user = register('donor')
        with session_factory() as db:
            db.get(user_models.User, user['id']).role = 'admin'
            db.commit()
        return user

    return _make_admin


@pytest.fixture
def admin(make_admin):
    return make_admin()


@pytest.fixture
def make_campaign(client, register, admin):
    def _make_campaign(goal=1000, owner=None, activate=True, title='Clean Water'):
        owner = owner or register('campaign_owner')
        deadline = (datetime.datetime.utcnow() + datetime.timedelta(days=30)).isoformat()
        resp = client.post('/api/campaigns', json={
            'title': title,
            'description': 'Wells for three villages',
            'category': 'community',
            'goalAmount': goal,
            'deadline': deadline,
        }, headers=owner['headers'])
        assert resp.status_code == 201, resp.text
        campaign = resp.json()
        campaign['owner'] = owner
        if activate:
            resp = client.put(
                f"/api/admin/campaigns/{campaign['id']}/verify",
                json={'isVerified': True},
                headers=admin['headers'],
            )
            assert resp.status_code == 200, resp.text
        return campaign

    return _make_campaign


@pytest.fixture
def donate(client, gateway):
    counter = itertools.count(1)

    def _donate(campaign_id, amount, headers, payment_id=None, signature=None, **extra):
        payment_id = payment_id or f'pay_Test{next(counter)}'
        body = {
            'orderId': ORDER_ID,
            'paymentId': payment_id,
            'signature': signature or gateway.signature_for(ORDER_ID, payment_id),
            'campaignId': campaign_id,
            'amount': amount,
        }
        body.update(extra)
        return client.post('/api/donations/verify-payment', json=body, headers=headers)

    return _donate
