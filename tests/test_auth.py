"""
Integration tests for the auth blueprint
Tests /auth/register, /auth/login, /auth/member-login and /auth/logout
"""
from models import db, Player


class TestRegistration:
    """Test /auth/register"""

    def test_register_page_loads(self, client):
        response = client.get('/auth/register')
        assert response.status_code == 200
        assert b'register' in response.data.lower()

    def test_register_places_player_at_bottom(self, client, players):
        response = client.post('/auth/register', data={
            'first_name': 'Hugo',
            'last_name': 'Herrera',
            'email': 'Hugo@Test.com',
            'password': 'Hugo1234',
            'ranking_position': '',
        })

        assert response.status_code == 302
        assert '/ladder/dashboard' in response.headers['Location']

        player = Player.query.filter_by(email='hugo@test.com').first()
        assert player is not None
        assert player.ranking_position == 8
        assert player.check_password('Hugo1234')

        with client.session_transaction() as sess:
            assert sess['player_id'] == player.id

    def test_register_with_free_position(self, client, players):
        response = client.post('/auth/register', data={
            'first_name': 'Ines',
            'last_name': 'Ibarra',
            'email': 'ines@test.com',
            'password': 'Ines1234',
            'ranking_position': '10',
        })

        assert response.status_code == 302
        assert Player.query.filter_by(email='ines@test.com').first().ranking_position == 10

    def test_register_rejects_taken_position(self, client, players):
        response = client.post('/auth/register', data={
            'first_name': 'Juan',
            'last_name': 'Juarez',
            'email': 'juan@test.com',
            'password': 'Juan1234',
            'ranking_position': '3',
        }, follow_redirects=True)

        assert response.status_code == 200
        assert b'Ranking position #3 is already taken' in response.data
        assert Player.query.filter_by(email='juan@test.com').first() is None

    def test_register_rejects_duplicate_email(self, client, players):
        response = client.post('/auth/register', data={
            'first_name': 'Other',
            'last_name': 'Ana',
            'email': 'ana@test.com',
            'password': 'Other1234',
        })

        assert response.status_code == 200
        assert b'Email already registered' in response.data
        assert Player.query.filter_by(email='ana@test.com').count() == 1

    def test_register_validates_format(self, client):
        response = client.post('/auth/register', data={
            'first_name': '',
            'last_name': 'Nobody',
            'email': 'bad-email',
            'password': 'short',
            'ranking_position': '-2',
        })

        assert response.status_code == 200
        assert b'First name is required' in response.data
        assert b'Valid email required' in response.data
        assert b'Password must be at least 8 characters' in response.data
        assert b'Ranking position must be greater than zero' in response.data
        assert Player.query.filter_by(last_name='Nobody').first() is None


class TestLogin:
    """Test /auth/login"""

    def test_login_page_loads(self, client):
        response = client.get('/auth/login')
        assert response.status_code == 200

    def test_player_login(self, client, players):
        response = client.post('/auth/login', data={
            'email': 'ANA@test.com',
            'password': 'Player123',
        })

        assert response.status_code == 302
        assert '/ladder/dashboard' in response.headers['Location']
        with client.session_transaction() as sess:
            assert sess['player_id'] == players[0].id
            assert sess['is_admin'] is False

    def test_admin_login_goes_to_panel(self, client, admin):
        response = client.post('/auth/login', data={
            'email': admin.email,
            'password': 'admin1234',
        })

        assert response.status_code == 302
        assert '/admin/' in response.headers['Location']

    def test_login_wrong_password(self, client, players):
        response = client.post('/auth/login', data={
            'email': 'ana@test.com',
            'password': 'wrong-password1',
        })

        assert response.status_code == 200
        assert b'Invalid email or password' in response.data
        with client.session_transaction() as sess:
            assert 'player_id' not in sess


class TestMemberLogin:
    """Test shared club credentials for court booking"""

    def test_member_login_success(self, client):
        response = client.post('/auth/member-login', data={
            'username': 'Member',
            'password': 'club2024',
        })

        assert response.status_code == 302
        assert '/courts/' in response.headers['Location']
        with client.session_transaction() as sess:
            assert sess['is_member'] is True
            assert 'player_id' not in sess

    def test_member_login_failure(self, client):
        response = client.post('/auth/member-login', data={
            'username': 'member',
            'password': 'wrong',
        })

        assert response.status_code == 200
        assert b'Invalid username or password' in response.data

    def test_member_cannot_open_dashboard(self, member_client):
        response = member_client.get('/ladder/dashboard')
        assert response.status_code == 302
        assert '/auth/login' in response.headers['Location']


class TestLogout:
    def test_logout_clears_session(self, authenticated_player):
        response = authenticated_player.get('/auth/logout')

        assert response.status_code == 302
        with authenticated_player.session_transaction() as sess:
            assert 'player_id' not in sess


class TestAccessControl:
    def test_dashboard_requires_login(self, client):
        response = client.get('/ladder/dashboard')
        assert response.status_code == 302
        assert '/auth/login' in response.headers['Location']

    def test_admin_panel_rejects_player(self, authenticated_player):
        response = authenticated_player.get('/admin/')
        assert response.status_code == 302
        assert '/auth/login' in response.headers['Location']

    def test_courts_require_member(self, client):
        response = client.get('/courts/')
        assert response.status_code == 302
        assert '/auth/member-login' in response.headers['Location']

    def test_logged_in_player_can_view_courts(self, authenticated_player):
        response = authenticated_player.get('/courts/')
        assert response.status_code == 200
