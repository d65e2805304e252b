from sqlalchemy import inspect

from models import db, AppliedMigration
from tests.conftest import login


def write_migration(app, name, sql):
    path = f"{app.config['MIGRATIONS_DIR']}/{name}.sql"
    with open(path, 'w', encoding='utf-8') as migration_file:
        migration_file.write(sql)


def test_migration_requires_admin(client, make_user):
    assert client.post('/api/admin/migrations/apply', json={'migrationName': 'x'}).status_code == 401

    login(client, make_user())
    response = client.post('/api/admin/migrations/apply', json={'migrationName': 'x'})
    assert response.status_code == 403
    assert response.get_json()['error'] == 'Unauthorized - Admin access required'


def test_migration_name_validation(client, make_user):
    login(client, make_user(admin=True))
    assert client.post('/api/admin/migrations/apply', json={}).status_code == 400
    assert client.post('/api/admin/migrations/apply', json={'migrationName': '../secrets'}).status_code == 400
    assert client.post('/api/admin/migrations/apply', json={'migrationName': 'missing'}).status_code == 404


def test_apply_migration_and_record_it(app, client, make_user):
    admin = make_user(admin=True)
    login(client, admin)
    write_migration(app, 'create_promotions', """
        -- promotions shown on the home page
        CREATE TABLE IF NOT EXISTS promotions (id INTEGER PRIMARY KEY, title TEXT);
        CREATE INDEX IF NOT EXISTS idx_promotions_title ON promotions (title);
    """)

    response = client.post('/api/admin/migrations/apply', json={'migrationName': 'create_promotions'})
    assert response.status_code == 200
    assert response.get_json()['success'] is True
    assert 'promotions' in inspect(db.engine).get_table_names()

    applied = AppliedMigration.query.filter_by(name='create_promotions').one()
    assert applied.applied_by == admin.id
    assert 'CREATE TABLE' in applied.sql_content


def test_failed_migration_returns_error(app, client, make_user):
    login(client, make_user(admin=True))
    write_migration(app, 'broken', "ALTER TABLE no_such_table ADD COLUMN x INTEGER;")

    response = client.post('/api/admin/migrations/apply', json={'migrationName': 'broken'})
    assert response.status_code == 500
    assert response.get_json()['error'].startswith('Error applying migration')
    assert AppliedMigration.query.count() == 0


def test_empty_migration_is_rejected(app, client, make_user):
    login(client, make_user(admin=True))
    write_migration(app, 'empty', "-- nothing yet\n")
    assert client.post('/api/admin/migrations/apply', json={'migrationName': 'empty'}).status_code == 400


def test_debug_schema_is_forbidden_by_default(client, make_user):
    assert client.get('/api/debug/schema').status_code == 403
    login(client, make_user())
    assert client.get('/api/debug/schema').status_code == 403


def test_debug_schema_with_flag_or_admin(app, client, make_user):
    app.config['ENABLE_DEBUG_ROUTES'] = True
    response = client.get('/api/debug/schema')
    assert response.status_code == 200
    columns = {column['name'] for column in response.get_json()['schema']['movies']}
    assert {'id', 'title', 'hebrew_title', 'slug'} <= columns

    app.config['ENABLE_DEBUG_ROUTES'] = False
    login(client, make_user(admin=True))
    assert client.get('/api/debug/schema').status_code == 200


def test_metrics_accepts_json_objects_only(client):
    assert client.post('/api/metrics', data='not json', content_type='text/plain').status_code == 400
    assert client.post('/api/metrics', json=[1, 2]).status_code == 400

    response = client.post('/api/metrics', json={'name': 'LCP', 'value': 1234.5, 'id': 'v1', 'page': '/en'})
    assert response.status_code == 200
    assert response.get_json() == {'success': True}
