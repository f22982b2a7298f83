import pytest

from learn_api import repositories, services
from learn_api.errors import ConflictError, NotFoundError, WriteFailedError


def vocab(pronunciation, word="hola", meaning="hello"):
    return {
        "word": word,
        "pronunciation": pronunciation,
        "meaning": meaning,
        "dateAdded": "2024-01-01",
        "authorEmail": "a@b.com",
    }


@pytest.fixture
def lesson(client):
    r = client.post('/lessons', json={'lessonNumber': 5, 'title': 'Greetings', 'description': 'd'})
    return r.json()


def test_add_to_missing_lesson_number_changes_nothing(client, lesson):
    r = client.patch('/lessons/6/vocabulary', json=vocab('OH-la'))
    assert r.status_code == 404
    assert r.json() == {'error': 'Lesson not found'}
    assert client.get(f"/lessons/{lesson['id']}").json()['vocabulary'] == []


def test_add_copies_lesson_number_into_entry(client, lesson):
    r = client.patch('/lessons/5/vocabulary', json=vocab('OH-la'))
    assert r.status_code == 200
    assert r.json()['vocabulary'] == [{
        'word': 'hola',
        'pronunciation': 'OH-la',
        'meaning': 'hello',
        'dateAdded': '2024-01-01',
        'lessonNumber': 5,
        'authorEmail': 'a@b.com',
    }]


def test_add_appends_in_order(client, lesson):
    for p in ('a', 'b', 'c'):
        r = client.patch('/lessons/5/vocabulary', json=vocab(p))
    assert [e['pronunciation'] for e in r.json()['vocabulary']] == ['a', 'b', 'c']


def test_add_duplicate_pronunciation_in_same_lesson_is_refused(client, lesson):
    client.patch('/lessons/5/vocabulary', json=vocab('OH-la'))
    r = client.patch('/lessons/5/vocabulary', json=vocab('OH-la', word='ola'))
    assert r.status_code == 400
    assert r.json() == {'error': 'Vocabulary already exists in this lesson'}
    assert len(client.get(f"/lessons/{lesson['id']}").json()['vocabulary']) == 1


def test_same_pronunciation_allowed_in_other_lesson(client, lesson):
    client.post('/lessons', json={'lessonNumber': 8, 'title': 'Other', 'description': 'd'})
    assert client.patch('/lessons/5/vocabulary', json=vocab('OH-la')).status_code == 200
    assert client.patch('/lessons/8/vocabulary', json=vocab('OH-la')).status_code == 200


def test_add_with_non_numeric_lesson_number_is_bad_request(client, lesson):
    assert client.patch('/lessons/five/vocabulary', json=vocab('OH-la')).status_code == 400


def test_update_keeps_position_and_other_entries(client, lesson):
    for p in ('a', 'b', 'c'):
        before = client.patch('/lessons/5/vocabulary', json=vocab(p, word=f'w-{p}')).json()['vocabulary']
    payload = {'word': 'new', 'meaning': 'changed', 'dateAdded': '2024-02-02', 'lessonNumber': 5, 'authorEmail': 'x@y.com'}
    r = client.patch(f"/lessons/{lesson['id']}/vocabulary/b", json=payload)
    assert r.status_code == 200
    after = r.json()['vocabulary']
    assert len(after) == 3
    assert after[0] == before[0]
    assert after[2] == before[2]
    assert after[1] == {'pronunciation': 'b', **payload}


def test_update_unknown_pronunciation_is_not_found(client, lesson):
    client.patch('/lessons/5/vocabulary', json=vocab('a'))
    payload = {'word': 'new', 'meaning': 'm', 'dateAdded': '2024-02-02', 'lessonNumber': 5, 'authorEmail': 'x@y.com'}
    r = client.patch(f"/lessons/{lesson['id']}/vocabulary/zzz", json=payload)
    assert r.status_code == 404
    assert r.json() == {'error': 'Vocabulary not found'}


def test_update_in_unknown_lesson_is_not_found(client, lesson):
    payload = {'word': 'new', 'meaning': 'm', 'dateAdded': '2024-02-02', 'lessonNumber': 5, 'authorEmail': 'x@y.com'}
    r = client.patch('/lessons/0123456789abcdef0123456789abcdef/vocabulary/a', json=payload)
    assert r.status_code == 404
    assert r.json() == {'error': 'Lesson not found'}


def test_delete_removes_exactly_one_entry(client, lesson):
    for p in ('a', 'b', 'c'):
        client.patch('/lessons/5/vocabulary', json=vocab(p))
    r = client.delete(f"/lessons/{lesson['id']}/vocabulary/b")
    assert r.status_code == 200
    assert [e['pronunciation'] for e in r.json()['vocabulary']] == ['a', 'c']


def test_delete_unknown_pronunciation_is_not_found(client, lesson):
    r = client.delete(f"/lessons/{lesson['id']}/vocabulary/nope")
    assert r.status_code == 404


def test_delete_lesson_drops_its_vocabulary(client, lesson):
    client.patch('/lessons/5/vocabulary', json=vocab('a'))
    client.delete(f"/lessons/{lesson['id']}")
    assert client.patch('/lessons/5/vocabulary', json=vocab('b')).status_code == 404


def test_write_back_with_stale_revision_modifies_nothing(session):
    svc = services.LessonService(session)
    lesson = svc.create_lesson(7, 'Race', 'd')
    lesson_id = lesson.id
    stale = lesson.revision
    svc.add_vocabulary(7, 'hola', 'OH-la', 'hello', '2024-01-01', 'a@b.com')

    repo = repositories.LessonRepository(session)
    assert repo.write_vocabulary(lesson_id, stale, []) is False
    assert [e['pronunciation'] for e in svc.get_lesson(lesson_id).vocabulary] == ['OH-la']


def test_lesson_update_invalidates_pending_vocabulary_write(session):
    svc = services.LessonService(session)
    lesson = svc.create_lesson(7, 'Race', 'd')
    lesson_id, stale = lesson.id, lesson.revision
    svc.update_lesson(lesson_id, 7, 'Renamed')
    assert repositories.LessonRepository(session).write_vocabulary(lesson_id, stale, [{'pronunciation': 'x'}]) is False


def test_lost_write_is_reported(session, monkeypatch):
    svc = services.LessonService(session)
    svc.create_lesson(7, 'Race', 'd')
    monkeypatch.setattr(repositories.LessonRepository, 'write_vocabulary', lambda *_args: False)
    with pytest.raises(WriteFailedError) as exc:
        svc.add_vocabulary(7, 'hola', 'OH-la', 'hello', '2024-01-01', 'a@b.com')
    assert exc.value.message == 'Failed to add vocabulary'


def test_lost_write_maps_to_bad_request(client, lesson, monkeypatch):
    monkeypatch.setattr(repositories.LessonRepository, 'write_vocabulary', lambda *_args: False)
    r = client.patch('/lessons/5/vocabulary', json=vocab('OH-la'))
    assert r.status_code == 400
    assert r.json() == {'error': 'Failed to add vocabulary'}


def test_service_errors(session):
    svc = services.LessonService(session)
    lesson = svc.create_lesson(1, 't', 'd')
    with pytest.raises(ConflictError):
        svc.create_lesson(1, 'again', 'd')
    with pytest.raises(NotFoundError):
        svc.delete_vocabulary(lesson.id, 'missing')
    with pytest.raises(NotFoundError):
        svc.add_vocabulary(2, 'w', 'p', 'm', '2024-01-01', 'a@b.com')
