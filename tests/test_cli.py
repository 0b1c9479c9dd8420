import json

from strata_analytics.__main__ import main

from conftest import export_entry

def run(capsys, tmp_path, *argv):
    url = f"sqlite:///{tmp_path / 'strata.db'}"
    code = main(['--database-url', url, *argv])
    out = capsys.readouterr().out
    return code, json.loads(out) if out.strip() else None

def test_import_then_status(capsys, tmp_path):
    history = tmp_path / 'history.json'
    history.write_text(json.dumps([
        export_entry(ts='2024-06-15T10:00:00Z', uri='spotify:track:t1'),
        export_entry(ts='2024-06-15T11:00:00Z', ms_played=100),
    ]))

    code, body = run(capsys, tmp_path, 'import', str(history), '--user', 'cli-user')
    assert code == 0
    assert body['data']['imported'] == 1
    assert body['data']['skipReasons']['tooShort'] == 1

    code, body = run(capsys, tmp_path, 'status', '--user', 'cli-user')
    assert body == {'data': {
        'hasData': True,
        'totalTracks': 1,
        'dateRange': {'from': '2024-06-15T10:00:00.000Z', 'to': '2024-06-15T10:00:00.000Z'},
    }}

def test_invalid_year_exits_non_zero(capsys, tmp_path):
    code, body = run(capsys, tmp_path, 'summary', '--user', 'cli-user', '--year', 'soon')
    assert code == 1
    assert body == {'error': "Invalid year"}

def test_malformed_file(capsys, tmp_path):
    history = tmp_path / 'history.json'
    history.write_text('{broken')
    code, body = run(capsys, tmp_path, 'import', str(history), '--user', 'cli-user')
    assert code == 1
    assert body == {'error': "Invalid JSON body"}

def test_init_db(capsys, tmp_path):
    code, body = run(capsys, tmp_path, 'init-db')
    assert code == 0
    assert body is None
    assert (tmp_path / 'strata.db').exists()
