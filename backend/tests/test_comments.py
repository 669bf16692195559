def _comment(client, campaign_id, headers, content='Great cause!', parent=None):
    body = {'campaignId': campaign_id, 'content': content}
    if parent is not None:
        body['parentComment'] = parent
    resp = client.post('/api/comments', json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_replies_are_nested_under_parent(client, make_campaign, register):
    campaign = make_campaign()
    alice, bob = register(), register()
    parent = _comment(client, campaign['id'], alice['headers'])
    reply = _comment(client, campaign['id'], bob['headers'], content='Agreed', parent=parent['id'])
    assert reply['parent_comment_id'] == parent['id']

    data = client.get(f"/api/comments/campaign/{campaign['id']}").json()
    assert data['pagination']['total'] == 1
    top = data['comments'][0]
    assert top['id'] == parent['id']
    assert top['reply_count'] == 1
    assert [r['content'] for r in top['replies']] == ['Agreed']


def test_deleted_reply_disappears_from_thread(client, make_campaign, register):
    campaign = make_campaign()
    alice, bob = register(), register()
    parent = _comment(client, campaign['id'], alice['headers'])
    reply = _comment(client, campaign['id'], bob['headers'], content='Oops', parent=parent['id'])

    # only the author may delete
    assert client.delete(f"/api/comments/{reply['id']}", headers=alice['headers']).status_code == 403
    assert client.delete(f"/api/comments/{reply['id']}", headers=bob['headers']).status_code == 200

    top = client.get(f"/api/comments/campaign/{campaign['id']}").json()['comments'][0]
    assert top['reply_count'] == 0
    assert top['replies'] == []
    assert client.delete(f"/api/comments/{reply['id']}", headers=bob['headers']).status_code == 404


def test_reply_parent_must_exist_in_same_campaign(client, make_campaign, register):
    first, second = make_campaign(title='First'), make_campaign(title='Second')
    user = register()
    parent = _comment(client, first['id'], user['headers'])

    resp = client.post('/api/comments', json={
        'campaignId': second['id'], 'content': 'Wrong thread', 'parentComment': parent['id'],
    }, headers=user['headers'])
    assert resp.status_code == 404
    assert resp.json()['detail'] == 'Parent comment not found'

    resp = client.post('/api/comments', json={'campaignId': 9999, 'content': 'Hello'}, headers=user['headers'])
    assert resp.status_code == 404


def test_blank_comment_is_rejected(client, make_campaign, register):
    campaign = make_campaign()
    user = register()
    resp = client.post('/api/comments', json={'campaignId': campaign['id'], 'content': '   '},
                       headers=user['headers'])
    assert resp.status_code == 400
    assert resp.json()['detail'] == 'Validation errors'


def test_edit_is_author_only(client, make_campaign, register):
    campaign = make_campaign()
    author, other = register(), register()
    comment = _comment(client, campaign['id'], author['headers'])

    resp = client.put(f"/api/comments/{comment['id']}", json={'content': 'Hijacked'}, headers=other['headers'])
    assert resp.status_code == 403

    resp = client.put(f"/api/comments/{comment['id']}", json={'content': ' Edited '}, headers=author['headers'])
    assert resp.status_code == 200
    assert resp.json()['content'] == 'Edited'
    assert resp.json()['is_edited'] is True
    assert resp.json()['edited_at'] is not None


def test_like_toggles(client, make_campaign, register):
    campaign = make_campaign()
    author, fan, other_fan = register(), register(), register()
    comment = _comment(client, campaign['id'], author['headers'])
    url = f"/api/comments/{comment['id']}/like"

    resp = client.post(url, headers=fan['headers'])
    assert resp.json() == {'message': 'Comment liked', 'is_liked': True, 'like_count': 1}
    resp = client.post(url, headers=other_fan['headers'])
    assert resp.json()['like_count'] == 2

    resp = client.post(url, headers=fan['headers'])
    assert resp.json() == {'message': 'Comment unliked', 'is_liked': False, 'like_count': 1}


def test_report_once_then_moderate(client, admin, make_campaign, register):
    campaign = make_campaign()
    author, reporter = register(), register()
    comment = _comment(client, campaign['id'], author['headers'], content='Buy cheap watches')
    url = f"/api/comments/{comment['id']}/report"

    assert client.post(url, json={'reason': 'spam'}, headers=reporter['headers']).status_code == 200
    resp = client.post(url, json={'reason': 'offensive'}, headers=reporter['headers'])
    assert resp.status_code == 400
    assert resp.json()['detail'] == 'You have already reported this comment'
    assert client.post(url, json={'reason': 'nonsense'}, headers=author['headers']).status_code == 400

    assert client.get('/api/admin/comments/reported', headers=reporter['headers']).status_code == 403
    reported = client.get('/api/admin/comments/reported', headers=admin['headers']).json()['comments']
    assert [(c['id'], c['report_count']) for c in reported] == [(comment['id'], 1)]

    resp = client.put(f"/api/admin/comments/{comment['id']}/moderate", json={'remove': True},
                      headers=admin['headers'])
    assert resp.status_code == 200
    moderated = resp.json()
    assert moderated['is_moderated'] is True
    assert moderated['is_deleted'] is True
    assert moderated['moderated_by_id'] == admin['id']

    assert client.get('/api/admin/comments/reported', headers=admin['headers']).json()['comments'] == []
    assert client.get(f"/api/comments/campaign/{campaign['id']}").json()['comments'] == []


def test_admin_may_delete_any_comment(client, admin, make_campaign, register):
    campaign = make_campaign()
    author = register()
    comment = _comment(client, campaign['id'], author['headers'])
    assert client.delete(f"/api/comments/{comment['id']}", headers=admin['headers']).status_code == 200


def test_user_comments(client, make_campaign, register):
    campaign = make_campaign()
    author = register()
    _comment(client, campaign['id'], author['headers'], content='One')
    _comment(client, campaign['id'], author['headers'], content='Two')

    data = client.get(f"/api/comments/user/{author['id']}").json()
    assert data['pagination']['total'] == 2
    assert {c['content'] for c in data['comments']} == {'One', 'Two'}
