import datetime

import pytest

from crowdfund import moderation
from crowdfund.complaint_models import ComplaintStatus


def test_admin_endpoints_require_admin(client, register):
    donor = register()
    owner = register('campaign_owner')
    for headers in (donor['headers'], owner['headers']):
        assert client.get('/api/admin/stats', headers=headers).status_code == 403
        assert client.get('/api/admin/users', headers=headers).status_code == 403
        assert client.get('/api/admin/complaints', headers=headers).status_code == 403
    assert client.get('/api/admin/stats').status_code == 401


def test_user_verification(client, admin, register):
    donor = register()
    url = f"/api/admin/users/{donor['id']}/verify"

    resp = client.put(url, json={'isVerified': False, 'rejectionReason': 'ID photo unreadable'},
                      headers=admin['headers'])
    assert resp.status_code == 200
    assert resp.json()['is_verified'] is False
    assert resp.json()['rejection_reason'] == 'ID photo unreadable'

    unverified = client.get('/api/admin/donors/unverified', headers=admin['headers']).json()['donors']
    assert donor['id'] in [u['id'] for u in unverified]

    resp = client.put(url, json={'isVerified': True}, headers=admin['headers'])
    user = resp.json()
    assert user['is_verified'] is True
    assert user['verified_by_id'] == admin['id']
    assert user['verified_at'] is not None
    assert user['rejection_reason'] is None

    unverified = client.get('/api/admin/donors/unverified', headers=admin['headers']).json()['donors']
    assert donor['id'] not in [u['id'] for u in unverified]
    assert client.put('/api/admin/users/9999/verify', json={'isVerified': True},
                      headers=admin['headers']).status_code == 404


def test_user_update_changes_role(client, admin, register):
    donor = register()
    resp = client.put(f"/api/admin/users/{donor['id']}", json={'role': 'campaign_owner', 'isVerified': True},
                      headers=admin['headers'])
    assert resp.status_code == 200
    assert resp.json()['role'] == 'campaign_owner'
    assert resp.json()['is_verified'] is True

    owners = client.get('/api/admin/users', params={'role': 'campaign_owner'}, headers=admin['headers']).json()
    assert [u['id'] for u in owners['users']] == [donor['id']]
    found = client.get('/api/admin/users', params={'search': donor['email']}, headers=admin['headers']).json()
    assert found['pagination']['total'] == 1


def test_campaign_verification(client, admin, make_campaign):
    approved = make_campaign(activate=False, title='Approved')
    rejected = make_campaign(activate=False, title='Rejected')

    pending = client.get('/api/admin/campaigns/unverified', headers=admin['headers']).json()['campaigns']
    assert {c['id'] for c in pending} == {approved['id'], rejected['id']}

    url = f"/api/admin/campaigns/{rejected['id']}/verify"
    resp = client.put(url, json={'isVerified': False, 'rejectionReason': 'Missing documents'},
                      headers=admin['headers'])
    assert resp.json()['status'] == 'rejected'
    assert resp.json()['rejection_reason'] == 'Missing documents'
    assert resp.json()['verified_by_id'] == admin['id']
    # a decision is final; a rejected campaign is not reviewed again
    assert client.put(url, json={'isVerified': True}, headers=admin['headers']).status_code == 400

    url = f"/api/admin/campaigns/{approved['id']}/verify"
    resp = client.put(url, json={'isVerified': True}, headers=admin['headers'])
    assert resp.json()['status'] == 'active'
    assert resp.json()['is_verified'] is True
    assert resp.json()['rejection_reason'] is None

    state = client.get(url, headers=admin['headers']).json()
    assert state['status'] == 'active'
    assert client.get('/api/admin/campaigns/unverified', headers=admin['headers']).json()['campaigns'] == []


def test_completed_campaign_cannot_be_reapproved(client, admin, make_campaign, register, donate):
    campaign = make_campaign(goal=100)
    donor = register()
    assert donate(campaign['id'], 100, donor['headers']).json()['campaign_status'] == 'completed'

    url = f"/api/admin/campaigns/{campaign['id']}/verify"
    for decision in ({'isVerified': True}, {'isVerified': False, 'rejectionReason': 'Too late'}):
        resp = client.put(url, json=decision, headers=admin['headers'])
        assert resp.status_code == 400
        assert "status is 'completed'" in resp.json()['detail']

    resp = donate(campaign['id'], 10, donor['headers'])
    assert resp.json()['campaign_status'] == 'completed'
    assert resp.json()['milestones'] == []
    assert client.get(f"/api/campaigns/{campaign['id']}").json()['status'] == 'completed'


def test_campaign_status_update(client, admin, make_campaign):
    campaign = make_campaign(activate=False)
    url = f"/api/admin/campaigns/{campaign['id']}/status"

    resp = client.put(url, json={'status': 'pending'}, headers=admin['headers'])
    assert resp.status_code == 400

    # allowed even though the campaign was never verified
    resp = client.put(url, json={'status': 'expired'}, headers=admin['headers'])
    assert resp.status_code == 200
    assert resp.json()['status'] == 'expired'
    assert resp.json()['is_verified'] is False

    listed = client.get('/api/admin/campaigns', params={'status': 'expired'}, headers=admin['headers']).json()
    assert [c['id'] for c in listed['campaigns']] == [campaign['id']]


def _complain(client, campaign_id, headers):
    resp = client.post('/api/complaints', json={
        'campaign': campaign_id,
        'subject': 'Suspicious campaign',
        'description': 'The photos are copied from a news site.',
    }, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()['complaint']


def test_complaint_submission(client, make_campaign, register):
    campaign = make_campaign()
    user = register()

    complaint = _complain(client, campaign['id'], user['headers'])
    assert complaint['status'] == 'pending'
    assert complaint['user_id'] == user['id']

    resp = client.post('/api/complaints', json={'campaign': campaign['id'], 'subject': 'Bad', 'description': 'short'},
                       headers=user['headers'])
    assert resp.status_code == 400
    resp = client.post('/api/complaints', json={
        'campaign': 9999, 'subject': 'Bad', 'description': 'Long enough description',
    }, headers=user['headers'])
    assert resp.status_code == 404

    mine = client.get('/api/complaints/my-complaints', headers=user['headers']).json()
    assert [c['id'] for c in mine['complaints']] == [complaint['id']]
    mine = client.get('/api/complaints/my-complaints', params={'status': 'resolved'}, headers=user['headers']).json()
    assert mine['complaints'] == []


def test_complaint_state_machine(client, admin, make_campaign, register):
    campaign = make_campaign()
    user = register()
    complaint = _complain(client, campaign['id'], user['headers'])
    url = f"/api/admin/complaints/{complaint['id']}"

    resp = client.put(url, json={'status': 'resolved', 'adminNotes': 'Campaign owner sent originals'},
                      headers=admin['headers'])
    assert resp.status_code == 200
    assert resp.json()['status'] == 'resolved'
    assert resp.json()['resolved_by_id'] == admin['id']

    resp = client.put(url, json={'status': 'pending'}, headers=admin['headers'])
    assert resp.status_code == 400
    assert resp.json()['detail'] == "Complaint cannot move from 'resolved' to 'pending'"

    # same status only touches the notes
    resp = client.put(url, json={'status': 'resolved', 'adminNotes': 'Double checked'}, headers=admin['headers'])
    assert resp.json()['admin_notes'] == 'Double checked'
    assert resp.json()['resolved_by_id'] == admin['id']

    resp = client.put(url, json={'status': 'in_review'}, headers=admin['headers'])
    assert resp.status_code == 200
    assert resp.json()['resolved_by_id'] is None
    assert resp.json()['admin_notes'] == 'Double checked'

    assert client.get(url, headers=admin['headers']).json()['status'] == 'in_review'
    listed = client.get('/api/admin/reports', params={'status': 'in_review'}, headers=admin['headers']).json()
    assert [c['id'] for c in listed['complaints']] == [complaint['id']]


class _Admin:
    id = 7


class _Complaint:
    def __init__(self, status):
        self.status = status
        self.admin_notes = None
        self.resolved_by_id = None


@pytest.mark.parametrize('current,target', [
    ('pending', 'in_review'), ('pending', 'dismissed'), ('in_review', 'pending'),
    ('in_review', 'resolved'), ('dismissed', 'in_review'),
])
def test_allowed_complaint_transitions(current, target):
    complaint = moderation.transition_complaint(_Complaint(current), _Admin(), ComplaintStatus(target))
    assert complaint.status == target


@pytest.mark.parametrize('current,target', [
    ('resolved', 'dismissed'), ('dismissed', 'resolved'), ('dismissed', 'pending'),
])
def test_rejected_complaint_transitions(current, target):
    with pytest.raises(moderation.InvalidTransition):
        moderation.transition_complaint(_Complaint(current), _Admin(), ComplaintStatus(target))


def test_dashboard_stats(client, admin, make_campaign, register, donate):
    campaign = make_campaign(goal=1000)
    make_campaign(activate=False)
    donor = register()
    donate(campaign['id'], 250, donor['headers'])
    _complain(client, campaign['id'], donor['headers'])

    stats = client.get('/api/admin/stats', headers=admin['headers']).json()
    assert stats['total_campaigns'] == 2
    assert stats['total_donations'] == 1
    assert stats['total_amount'] == 250
    assert stats['pending_complaints'] == 1
    assert {row['key']: row['count'] for row in stats['campaigns_by_status']} == {'active': 1, 'pending': 1}
    roles = {row['key']: row['count'] for row in stats['users_by_role']}
    assert roles['admin'] == 1
    assert sum(row['count'] for row in stats['monthly_signups']) == stats['total_users']


def test_donor_history_filters(client, admin, make_campaign, register, donate):
    first, second = make_campaign(title='First'), make_campaign(title='Second')
    alice, bob = register(), register()
    donate(first['id'], 100, alice['headers'])
    donate(second['id'], 40, alice['headers'])
    donate(first['id'], 60, bob['headers'])

    url = '/api/admin/donor-history'
    data = client.get(url, params={'donor': alice['id']}, headers=admin['headers']).json()
    assert data['pagination']['total'] == 2
    assert data['total_amount'] == 140

    data = client.get(url, params={'campaign': first['id']}, headers=admin['headers']).json()
    assert data['total_amount'] == 160
    assert {d['campaign']['title'] for d in data['donations']} == {'First'}

    tomorrow = (datetime.datetime.utcnow() + datetime.timedelta(days=1)).isoformat()
    data = client.get(url, params={'dateFrom': tomorrow}, headers=admin['headers']).json()
    assert data['donations'] == []
    assert data['total_amount'] == 0


def test_campaign_ledger_check(client, admin, make_campaign, register, donate):
    campaign = make_campaign(goal=1000)
    donor = register()
    donate(campaign['id'], 300, donor['headers'])
    donate(campaign['id'], 125.25, donor['headers'])

    data = client.get(f"/api/admin/campaigns/{campaign['id']}/ledger", headers=admin['headers']).json()
    assert data['current_amount'] == 425.25
    assert data['succeeded_total'] == 425.25
    assert data['consistent'] is True


def test_rejecting_verified_user_clears_verifier(client, admin, register):
    donor = register()
    url = f"/api/admin/users/{donor['id']}/verify"
    assert client.put(url, json={'isVerified': True}, headers=admin['headers']).json()['verified_by_id'] == admin['id']

    user = client.put(url, json={'isVerified': False, 'rejectionReason': 'Documents expired'},
                      headers=admin['headers']).json()
    assert user['is_verified'] is False
    assert user['verified_by_id'] is None
    assert user['verified_at'] is None
    assert user['rejection_reason'] == 'Documents expired'


def test_complaint_notes_can_be_cleared(client, admin, make_campaign, register):
    campaign = make_campaign()
    user = register()
    complaint = _complain(client, campaign['id'], user['headers'])
    url = f"/api/admin/complaints/{complaint['id']}"

    resp = client.put(url, json={'status': 'in_review', 'adminNotes': 'Asked owner for receipts'},
                      headers=admin['headers'])
    assert resp.json()['admin_notes'] == 'Asked owner for receipts'
    # omitted notes are kept
    assert client.put(url, json={'status': 'in_review'}, headers=admin['headers']).json()['admin_notes'] == \
        'Asked owner for receipts'
    assert client.put(url, json={'status': 'in_review', 'adminNotes': ''},
                      headers=admin['headers']).json()['admin_notes'] is None
