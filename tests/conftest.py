import os

# The engine is created when the app module is imported, so point it at an
# in-memory database before that happens.
os.environ['DATABASE_URL'] = 'sqlite:///:memory:'

import pytest
from datetime import time, timedelta

from app import app
from models import db, Player, Challenge, Court, init_default_data, club_today


@pytest.fixture
def flask_app():
    """Test application with a fresh in-memory SQLite database"""
    app.config['TESTING'] = True
    app.config['SECRET_KEY'] = 'test-secret-key'
    app.config['MEMBER_USERNAME'] = 'member'
    app.config['MEMBER_PASSWORD'] = 'club2024'

    with app.app_context():
        db.drop_all()
        db.create_all()
        # Default admin, three courts and a pricing row
        init_default_data()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(flask_app):
    """Test client"""
    return flask_app.test_client()


def _make_player(email, first_name, last_name, position, password='Player123'):
    player = Player(
        email=email,
        first_name=first_name,
        last_name=last_name,
        ranking_position=position,
    )
    player.set_password(password)
    db.session.add(player)
    return player


@pytest.fixture
def players(flask_app):
    """Seven ranked players, positions 1 to 7"""
    names = [
        ('Ana', 'Alvarez'),
        ('Bruno', 'Benitez'),
        ('Carla', 'Castro'),
        ('Diego', 'Diaz'),
        ('Elena', 'Espinoza'),
        ('Facundo', 'Fernandez'),
        ('Gabriela', 'Gomez'),
    ]
    created = [
        _make_player(f'{first.lower()}@test.com', first, last, position)
        for position, (first, last) in enumerate(names, start=1)
    ]
    db.session.commit()
    return created


@pytest.fixture
def admin(flask_app):
    """The seeded admin account"""
    return Player.query.filter_by(is_admin=True).first()


@pytest.fixture
def challenge(flask_app, players):
    """Pending challenge from #7 to #5, two days ahead"""
    record = Challenge(
        challenger_id=players[6].id,
        challenged_id=players[4].id,
        challenge_date=club_today() + timedelta(days=2),
        challenge_time=time(18, 0),
        status='pending',
    )
    db.session.add(record)
    db.session.commit()
    return record


@pytest.fixture
def accepted_challenge(flask_app, challenge):
    challenge.status = 'accepted'
    db.session.commit()
    return challenge


@pytest.fixture
def court(flask_app):
    """A court with lights"""
    return Court.query.filter_by(has_lights=True).order_by(Court.id.asc()).first()


@pytest.fixture
def unlit_court(flask_app):
    return Court.query.filter_by(has_lights=False).first()


@pytest.fixture
def authenticated_player(client, players):
    """Client logged in as the player at position #7"""
    with client.session_transaction() as sess:
        sess['player_id'] = players[6].id
        sess['email'] = players[6].email
        sess['is_admin'] = False
    return client


@pytest.fixture
def authenticated_admin(client, admin):
    """Client logged in as the admin"""
    with client.session_transaction() as sess:
        sess['player_id'] = admin.id
        sess['email'] = admin.email
        sess['is_admin'] = True
    return client


@pytest.fixture
def member_client(client):
    """Client holding the shared club member session only"""
    with client.session_transaction() as sess:
        sess['is_member'] = True
    return client
