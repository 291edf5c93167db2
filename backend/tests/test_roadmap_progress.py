import json

import pytest
from sqlmodel import Session

from codefuture import repositories
from conftest import ROADMAP_JSON, bearer


def test_roadmap_not_found_before_generation(client, signup):
    token, _ = signup()
    r = client.get('/api/roadmap', headers=bearer(token))
    assert r.status_code == 200
    assert r.json() == {'found': False}


def test_generate_then_read_roadmap(client, signup, fake_ai):
    token, _ = signup()
    payload = {'role': 'Teacher', 'experience': 'beginner', 'goal': 'automate grading', 'other': ''}
    r = client.post('/api/roadmap/generate', json=payload, headers=bearer(token))
    assert r.status_code == 200
    body = r.json()
    assert body['success'] is True
    plan_id = body['plan_id']
    assert fake_ai.calls == [('generate_full_roadmap', ('Teacher', 'beginner', 'automate grading', ''))]

    got = client.get('/api/roadmap', headers=bearer(token)).json()
    assert got['found'] is True
    assert got['data']['plan_id'] == plan_id
    assert got['data']['current_index'] == 0
    assert got['data']['content']['title'] == 'Python Basics'


def test_generate_stores_persona_and_goal(app, client, signup):
    token, user = signup()
    payload = {'role': 'Nurse', 'experience': 'none', 'goal': 'spreadsheets', 'other': 'evenings only'}
    plan_id = client.post('/api/roadmap/generate', json=payload, headers=bearer(token)).json()['plan_id']
    with Session(app.state.db.engine) as session:
        plan = repositories.LessonPlanRepository(session).get(plan_id)
    assert plan.persona == 'Nurse (none)'
    assert plan.goals == 'spreadsheets'
    assert plan.user_id == user['id']


def test_generate_requires_auth(client, fake_ai):
    r = client.post('/api/roadmap/generate', json={'role': 'x'})
    assert r.status_code == 401
    assert fake_ai.calls == []


def test_ai_failure_saves_nothing(client, signup, fake_ai):
    token, _ = signup()
    fake_ai.fail = True
    r = client.post('/api/roadmap/generate', json={'role': 'Dev'}, headers=bearer(token))
    assert r.status_code == 500
    assert 'Failed to generate roadmap' in r.json()['error']
    assert client.get('/api/roadmap', headers=bearer(token)).json() == {'found': False}


def test_progress_update_has_no_upper_bound(client, signup):
    token, _ = signup()
    plan_id = client.post('/api/roadmap/generate', json={'role': 'Dev'}, headers=bearer(token)).json()['plan_id']
    # the stored roadmap has two lessons; 57 is accepted as-is
    for index in (1, 0, 57):
        r = client.post('/api/roadmap/progress', json={'plan_id': plan_id, 'index': index})
        assert r.status_code == 200
        assert r.json() == {'success': True}
        got = client.get('/api/roadmap', headers=bearer(token)).json()
        assert got['data']['current_index'] == index


def test_progress_update_needs_no_token_and_no_ownership(client, signup):
    owner_token, _ = signup()
    other_token, _ = signup(name='Eve', email='eve@example.com')
    plan_id = client.post('/api/roadmap/generate', json={'role': 'Dev'}, headers=bearer(owner_token)).json()['plan_id']
    client.post('/api/roadmap/progress', json={'plan_id': plan_id, 'index': 3}, headers=bearer(other_token))
    assert client.get('/api/roadmap', headers=bearer(owner_token)).json()['data']['current_index'] == 3


def test_progress_update_rejects_malformed_body(client):
    assert client.post('/api/roadmap/progress', json={'plan_id': 'abc'}).status_code == 400


@pytest.mark.parametrize('body', [
    {'plan_id': 1, 'index': True},
    {'plan_id': 1, 'index': '7'},
    {'plan_id': '1', 'index': 2},
    {'plan_id': 1, 'index': 2.5},
])
def test_progress_update_requires_json_integers(client, signup, body):
    token, _ = signup()
    client.post('/api/roadmap/generate', json={'role': 'Dev'}, headers=bearer(token))
    r = client.post('/api/roadmap/progress', json=body)
    assert r.status_code == 400
    assert r.json() == {'error': 'Invalid request body'}
    assert client.get('/api/roadmap', headers=bearer(token)).json()['data']['current_index'] == 0


def test_latest_plan_wins(client, signup, fake_ai):
    token, _ = signup()
    client.post('/api/roadmap/generate', json={'role': 'Dev'}, headers=bearer(token))
    fake_ai.roadmap = '{"title": "Second"}'
    second = client.post('/api/roadmap/generate', json={'role': 'Dev'}, headers=bearer(token)).json()['plan_id']
    got = client.get('/api/roadmap', headers=bearer(token)).json()
    assert got['data']['plan_id'] == second
    assert got['data']['content'] == {'title': 'Second'}


def test_unparseable_content_is_returned_raw(client, signup, fake_ai):
    token, _ = signup()
    fake_ai.roadmap = 'Sorry, here is a plan in prose.'
    client.post('/api/roadmap/generate', json={'role': 'Dev'}, headers=bearer(token))
    got = client.get('/api/roadmap', headers=bearer(token)).json()
    assert got['data']['content'] == 'Sorry, here is a plan in prose.'


def test_view_roadmap_by_id_is_public(client, signup):
    token, _ = signup()
    plan_id = client.post('/api/roadmap/generate', json={'role': 'Dev'}, headers=bearer(token)).json()['plan_id']
    r = client.get('/api/roadmap/view', params={'id': plan_id})
    assert r.status_code == 200
    body = r.json()
    assert body['success'] is True
    assert body['data']['plan_id'] == plan_id
    assert body['data']['content'] == json.loads(ROADMAP_JSON)


def test_view_unknown_roadmap_is_404(client):
    r = client.get('/api/roadmap/view', params={'id': 424242})
    assert r.status_code == 404
    assert r.json() == {'error': 'Roadmap not found'}


def test_view_roadmap_bad_id(client):
    assert client.get('/api/roadmap/view').status_code == 400
    assert client.get('/api/roadmap/view', params={'id': 'abc'}).status_code == 400


def test_lesson_plan_anonymous_and_owned(app, client, signup):
    anon = client.post('/api/lesson-plan', json={'persona': 'kid', 'goals': 'make a game'})
    assert anon.status_code == 200
    assert anon.json()['text'] == ROADMAP_JSON
    token, user = signup()
    owned = client.post('/api/lesson-plan', json={'persona': 'kid', 'goals': 'web'}, headers=bearer(token))
    with Session(app.state.db.engine) as session:
        repo = repositories.LessonPlanRepository(session)
        assert repo.get(anon.json()['id']).user_id is None
        assert repo.get(owned.json()['id']).user_id == user['id']


def test_courses_list_and_owner_checked_delete(client, signup):
    token, _ = signup()
    other, _ = signup(name='Eve', email='eve@example.com')
    first = client.post('/api/lesson-plan', json={'persona': 'kid', 'goals': 'a'}, headers=bearer(token)).json()['id']
    second = client.post('/api/lesson-plan', json={'persona': 'pro', 'goals': 'b'}, headers=bearer(token)).json()['id']

    courses = client.get('/api/courses', headers=bearer(token)).json()
    assert [c['id'] for c in courses] == [second, first]
    assert courses[0]['persona'] == 'pro'
    assert client.get('/api/courses', headers=bearer(other)).json() == []

    # another user's delete is ignored
    assert client.delete('/api/courses', params={'id': first}, headers=bearer(other)).status_code == 200
    assert len(client.get('/api/courses', headers=bearer(token)).json()) == 2

    r = client.delete('/api/courses', params={'id': first}, headers=bearer(token))
    assert r.json() == {'status': 'deleted'}
    assert [c['id'] for c in client.get('/api/courses', headers=bearer(token)).json()] == [second]
    assert client.delete('/api/courses', headers=bearer(token)).status_code == 400
    assert client.get('/api/courses').status_code == 401
