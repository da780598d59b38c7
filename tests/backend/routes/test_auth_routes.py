import pytest

from backend.auth.passwords import hash_password
from backend.auth.rate_limit import auth_rate_limiter
from backend.core import config
from backend.models.user import User


@pytest.fixture
def registered_teacher(portal_db):
    user = User(
        name='Grace Hopper',
        email='grace@school.edu',
        password_hash=hash_password('cobol-1959'),
        role='TEACHER',
    )
    portal_db.add(user)
    portal_db.commit()
    return user


def test_login_sets_http_only_session_cookie(client, registered_teacher) -> None:
    response = client.post('/api/auth/login', json={'email': 'grace@school.edu', 'password': 'cobol-1959'})

    assert response.status_code == 200
    assert response.json() == {
        'message': 'Login successful',
        'user': {'email': 'grace@school.edu', 'role': 'TEACHER', 'name': 'Grace Hopper'},
    }

    set_cookie = response.headers['set-cookie']
    assert set_cookie.startswith(f'{config.SESSION_COOKIE_NAME}=')
    assert 'HttpOnly' in set_cookie


def test_login_cookie_authenticates_follow_up_requests(client, registered_teacher) -> None:
    login_response = client.post('/api/auth/login', json={'email': 'grace@school.edu', 'password': 'cobol-1959'})
    token = login_response.cookies[config.SESSION_COOKIE_NAME]

    response = client.get('/api/auth/me', headers={'Cookie': f'{config.SESSION_COOKIE_NAME}={token}'})

    assert response.status_code == 200
    assert response.json() == {'email': 'grace@school.edu', 'role': 'TEACHER'}


@pytest.mark.parametrize(
    'credentials',
    [
        {'email': 'grace@school.edu', 'password': 'wrong-password'},
        {'email': 'nobody@school.edu', 'password': 'cobol-1959'},
    ],
)
def test_login_rejects_bad_credentials(client, registered_teacher, credentials) -> None:
    response = client.post('/api/auth/login', json=credentials)

    assert response.status_code == 401
    assert response.json() == {'detail': 'Invalid email or password'}
    assert 'set-cookie' not in response.headers


@pytest.mark.parametrize(
    'body',
    [
        {'email': 'grace@school.edu'},
        {'email': 'grace@school.edu', 'password': 1959},
        ['grace@school.edu', 'cobol-1959'],
        None,
    ],
)
def test_login_requires_email_and_password(client, body) -> None:
    response = client.post('/api/auth/login', json=body)

    assert response.status_code == 400
    assert response.json() == {'detail': 'Email and password required'}


def test_logout_expires_session_cookie(client) -> None:
    response = client.post('/api/auth/logout')

    assert response.status_code == 200
    assert response.headers['set-cookie'].startswith(f'{config.SESSION_COOKIE_NAME}=')
    assert 'Max-Age=0' in response.headers['set-cookie']


def test_me_requires_session_cookie(client) -> None:
    response = client.get('/api/auth/me')

    assert response.status_code == 401


def test_auth_routes_are_rate_limited(client, registered_teacher, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(auth_rate_limiter, 'max_requests', 2)
    credentials = {'email': 'grace@school.edu', 'password': 'wrong-password'}

    first = client.post('/api/auth/login', json=credentials)
    second = client.post('/api/auth/login', json=credentials)
    third = client.post('/api/auth/login', json=credentials)

    assert first.status_code == 401
    assert second.status_code == 401
    assert third.status_code == 429
    assert third.json() == {'detail': 'Too many requests, please try again later.'}
    assert int(third.headers['retry-after']) >= 1


def test_rate_limit_does_not_apply_outside_auth_routes(
    client,
    session_headers,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(auth_rate_limiter, 'max_requests', 1)
    headers = session_headers('ghost@school.edu', 'STUDENT')

    statuses = [client.get('/api/student/studentDetails', headers=headers).status_code for _ in range(3)]

    assert statuses == [404, 404, 404]


def test_student_registered_with_padded_email_can_log_in(client, session_headers) -> None:
    registration = client.post(
        '/api/teacher/addStudent',
        json={
            'name': 'Ada Lovelace',
            'email': ' ada@school.edu ',
            'password': 'analytical-engine',
            'subject': 'Mathematics',
            'roll_num': '42',
        },
        headers=session_headers('grace@school.edu', 'TEACHER'),
    )
    assert registration.status_code == 201

    response = client.post('/api/auth/login', json={'email': 'ada@school.edu', 'password': 'analytical-engine'})

    assert response.status_code == 200
    assert response.json()['user']['email'] == 'ada@school.edu'
