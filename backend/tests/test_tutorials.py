import importlib.util
import json
from pathlib import Path

from learn_api import services

SCRIPT = Path(__file__).resolve().parents[1] / 'scripts' / 'import_tutorials.py'

LINKS = [
    {'title': 'Greetings', 'url': 'https://youtu.be/greet', 'lessonNumber': 1},
    {'title': 'Numbers', 'url': 'https://youtu.be/num', 'description': 'Counting to ten'},
]


def _load_script():
    spec = importlib.util.spec_from_file_location('import_tutorials', SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_tutorials_empty_by_default(client):
    r = client.get('/tutorials')
    assert r.status_code == 200
    assert r.json() == []


def test_import_links_skips_known_urls_and_reports_errors(session):
    svc = services.TutorialService(session)
    result = svc.import_links(LINKS + [{'title': 'No url'}, LINKS[0]])
    assert result['created'] == 2
    assert result['skipped'] == 1
    assert [e['index'] for e in result['errors']] == [2]

    again = svc.import_links(LINKS)
    assert again == {'created': 0, 'skipped': 2, 'errors': []}
    assert len(svc.list_tutorials()) == 2


def test_imported_tutorials_are_served(client, settings, tmp_path, capsys):
    source = tmp_path / 'links.json'
    source.write_text(json.dumps(LINKS), encoding='utf-8')
    assert _load_script().main(source, database_url=settings.DATABASE_URL) == 0
    assert 'Created 2 tutorial links, skipped 0, errors 0' in capsys.readouterr().out

    r = client.get('/tutorials')
    assert r.status_code == 200
    by_title = {t['title']: t for t in r.json()}
    assert by_title['Greetings']['lessonNumber'] == 1
    assert by_title['Numbers']['description'] == 'Counting to ten'
    assert all(len(t['id']) == 32 for t in r.json())


def test_import_script_rejects_non_array(settings, tmp_path):
    source = tmp_path / 'links.json'
    source.write_text(json.dumps({'title': 'x'}), encoding='utf-8')
    assert _load_script().main(source, database_url=settings.DATABASE_URL) == 1
