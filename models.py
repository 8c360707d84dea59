from datetime import datetime, date, time, timedelta
import logging
import os
import re
import pytz

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import or_, and_, inspect, text, func
from sqlalchemy.orm import validates
from werkzeug.security import generate_password_hash, check_password_hash

db = SQLAlchemy()
logger = logging.getLogger(__name__)

CLUB_TZ = pytz.timezone(os.environ.get('CLUB_TIMEZONE', 'America/Argentina/Buenos_Aires'))

MAX_CHALLENGE_DISTANCE = 5
CHALLENGE_WINDOW_DAYS = 7
NO_SHOW_PENALTY = 2

PLAYER_CHALLENGE_TIMES = (
    '08:00', '09:00', '10:00', '11:00',
    '14:00', '15:00', '16:00', '17:00', '18:00', '19:00', '20:00',
)
ADMIN_CHALLENGE_TIMES = (
    '08:00', '09:00', '10:00', '11:00', '12:00',
    '14:00', '15:00', '16:00', '17:00', '18:00', '19:00', '20:00', '21:00',
)

CHALLENGE_STATUSES = (
    'pending',
    'accepted',
    'completed',
    'cancelled',
    'declined',
    'rejected',
    'no_show',
    'postponed_rain',
)
OPEN_STATUSES = ('pending', 'accepted', 'postponed_rain')
ALLOWED_TRANSITIONS = {
    'pending': {'accepted', 'declined', 'rejected', 'cancelled'},
    'accepted': {'completed', 'cancelled', 'no_show', 'postponed_rain'},
    'postponed_rain': {'accepted', 'cancelled'},
}

# Weekly availability grid, two-hour blocks. Days use 0 = Sunday.
AVAILABILITY_BLOCKS = (
    (time(8, 0), time(10, 0)),
    (time(10, 0), time(12, 0)),
    (time(12, 0), time(14, 0)),
    (time(14, 0), time(16, 0)),
    (time(16, 0), time(18, 0)),
    (time(18, 0), time(20, 0)),
    (time(20, 0), time(22, 0)),
)
WEEKDAY_NAMES = {
    1: 'Monday',
    2: 'Tuesday',
    3: 'Wednesday',
    4: 'Thursday',
    5: 'Friday',
    6: 'Saturday',
    0: 'Sunday',
}

COURT_OPENING_HOUR = 7
CLOSING_HOUR_WITH_LIGHTS = 22
CLOSING_HOUR_WITHOUT_LIGHTS = 20
SLOT_STEP_MINUTES = 30
GAME_TYPES = ('singles', 'doubles')
PLAYERS_PER_GAME = {'singles': 2, 'doubles': 4}
DEFAULT_SINGLES_PRICE = 10000
DEFAULT_DOUBLES_PRICE = 12000


def current_time():
    return datetime.now(CLUB_TZ)


def club_today() -> date:
    return current_time().date()


def is_weekend(for_date: date) -> bool:
    return for_date.weekday() >= 5


def game_duration_minutes(game_type: str, for_date: date) -> int:
    """Singles 1h30 / doubles 2h on weekdays, 1h / 1h30 on weekends."""
    if game_type not in GAME_TYPES:
        raise ValueError(f'Unknown game type: {game_type}')
    if is_weekend(for_date):
        return 60 if game_type == 'singles' else 90
    return 90 if game_type == 'singles' else 120


def minutes_of(value: time) -> int:
    return value.hour * 60 + value.minute


def time_from_minutes(total: int) -> time:
    return time(total // 60, total % 60)


def parse_hhmm(value: str) -> time:
    return datetime.strptime(value.strip()[:5], '%H:%M').time()


def availability_key(day: int, start: time, end: time) -> str:
    return f"{day}-{start.strftime('%H:%M')}-{end.strftime('%H:%M')}"


class Player(db.Model):
    """Club members on the challenge ladder. Admins are players flagged as such."""

    __tablename__ = 'players'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(80), nullable=False)
    last_name = db.Column(db.String(80), nullable=False)
    ranking_position = db.Column(db.Integer, nullable=False, default=0)
    is_admin = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=current_time)
    updated_at = db.Column(db.DateTime, default=current_time, onupdate=current_time)

    availability = db.relationship(
        'Availability', backref='player', lazy=True, cascade='all, delete-orphan'
    )
    notifications = db.relationship(
        'Notification', backref='player', lazy=True, cascade='all, delete-orphan'
    )

    def __repr__(self):  # pragma: no cover - debug helper
        return f"<Player {self.id} {self.full_name} #{self.ranking_position}>"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_ranked(self) -> bool:
        return not self.is_admin and (self.ranking_position or 0) > 0

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    @validates('email')
    def normalize_email(self, key, value):
        return value.strip().lower() if value else value

    @staticmethod
    def validate_format(
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        ranking_position: str | None = None,
    ) -> list[str]:
        """Validate registration data format without using the database."""
        errors: list[str] = []

        if not first_name or not first_name.strip():
            errors.append("First name is required")

        if not last_name or not last_name.strip():
            errors.append("Last name is required")

        email_pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        if not email or not re.match(email_pattern, email.strip()):
            errors.append("Valid email required")

        if not password or len(password) < 8:
            errors.append("Password must be at least 8 characters")
        elif not re.search(r'[A-Za-z]', password) or not re.search(r'\d', password):
            errors.append("Password must contain at least one letter and one number")

        if ranking_position not in (None, ''):
            try:
                position = int(ranking_position)
            except (TypeError, ValueError):
                errors.append("Ranking position must be a whole number")
            else:
                if position <= 0:
                    errors.append("Ranking position must be greater than zero")

        return errors

    def challengeable_opponents(self) -> list['Player']:
        """Ranked players up to MAX_CHALLENGE_DISTANCE places above this one."""
        if not self.is_ranked:
            return []
        highest = max(1, self.ranking_position - MAX_CHALLENGE_DISTANCE)
        return (
            Player.query.filter(
                Player.ranking_position >= highest,
                Player.ranking_position < self.ranking_position,
                Player.ranking_position > 0,
                _not_admin(),
            )
            .order_by(Player.ranking_position.asc())
            .all()
        )

    def can_challenge(self, other: 'Player') -> bool:
        if other is None or other.id == self.id:
            return False
        return any(candidate.id == other.id for candidate in self.challengeable_opponents())

    def challenges(self):
        return Challenge.query.filter(
            or_(Challenge.challenger_id == self.id, Challenge.challenged_id == self.id)
        )

    def match_record(self) -> dict:
        completed = self.challenges().filter(Challenge.status == 'completed').all()
        wins = len([c for c in completed if c.winner_id == self.id])
        losses = len([c for c in completed if c.winner_id and c.winner_id != self.id])
        return {'wins': wins, 'losses': losses, 'total': len(completed)}

    def notify(self, message: str, category: str = 'info', link_target: str = None, commit: bool = False):
        """Create an in-app notification entry for this player."""
        note = Notification(
            player_id=self.id,
            message=message,
            category=category,
            link_target=link_target,
        )
        db.session.add(note)
        if commit:
            db.session.commit()
        return note


def _not_admin():
    return or_(Player.is_admin.is_(False), Player.is_admin.is_(None))


def ranked_players() -> list[Player]:
    return (
        Player.query.filter(
            Player.ranking_position > 0,
            _not_admin(),
        )
        .order_by(Player.ranking_position.asc())
        .all()
    )


def next_ranking_position() -> int:
    highest = db.session.query(func.max(Player.ranking_position)).filter(
        _not_admin()
    ).scalar()
    return (highest or 0) + 1


def ranking_position_taken(position: int, exclude_id: int | None = None) -> bool:
    query = Player.query.filter(
        Player.ranking_position == position,
        _not_admin(),
    )
    if exclude_id is not None:
        query = query.filter(Player.id != exclude_id)
    return query.first() is not None


def swap_positions(first: Player, second: Player) -> None:
    first.ranking_position, second.ranking_position = second.ranking_position, first.ranking_position


def drop_positions(player: Player, places: int = NO_SHOW_PENALTY) -> int:
    """Move a player down the ladder; everyone passed moves up one place.

    The drop stops at the bottom of the ladder. Returns the new position.
    """
    if not player.is_ranked or places <= 0:
        return player.ranking_position

    ladder = ranked_players()
    try:
        index = next(i for i, p in enumerate(ladder) if p.id == player.id)
    except StopIteration:
        return player.ranking_position

    target_index = min(index + places, len(ladder) - 1)
    if target_index == index:
        return player.ranking_position

    positions = [p.ranking_position for p in ladder]
    moved = ladder.pop(index)
    ladder.insert(target_index, moved)
    for position, member in zip(positions[index:target_index + 1], ladder[index:target_index + 1]):
        member.ranking_position = position
    return player.ranking_position


def set_ranking_position(player: Player, position: int) -> None:
    """Admin edit of a position.

    A ranked player swaps with whoever holds the target. An unranked player
    is inserted there and everyone from the target down moves one place.
    Position 0 takes the player off the ladder; the players below move up.
    """
    if position < 0:
        raise ValueError('Ranking position cannot be negative')
    if player.is_admin and position > 0:
        raise ValueError('Admins cannot be placed on the ladder')

    current = player.ranking_position if player.is_ranked else 0
    if position == current:
        return

    others = Player.query.filter(
        Player.ranking_position > 0,
        Player.id != player.id,
        _not_admin(),
    )

    if position == 0:
        for other in others.filter(Player.ranking_position > current).all():
            other.ranking_position -= 1
        player.ranking_position = 0
        return

    holder = others.filter(Player.ranking_position == position).first()
    if holder and current:
        holder.ranking_position = current
    elif holder:
        for other in others.filter(Player.ranking_position >= position).all():
            other.ranking_position += 1
    player.ranking_position = position


class Challenge(db.Model):
    """A proposed match between two ladder players."""

    __tablename__ = 'challenges'

    id = db.Column(db.Integer, primary_key=True)
    challenger_id = db.Column(db.Integer, db.ForeignKey('players.id'), nullable=False)
    challenged_id = db.Column(db.Integer, db.ForeignKey('players.id'), nullable=False)
    challenge_date = db.Column(db.Date, nullable=False)
    challenge_time = db.Column(db.Time, nullable=False)
    status = db.Column(db.String(20), default='pending')
    winner_id = db.Column(db.Integer, db.ForeignKey('players.id'))
    score = db.Column(db.String(100))
    no_show_player_id = db.Column(db.Integer, db.ForeignKey('players.id'))
    created_by_admin = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=current_time)
    updated_at = db.Column(db.DateTime, default=current_time, onupdate=current_time)

    challenger = db.relationship('Player', foreign_keys=[challenger_id], backref='challenges_sent')
    challenged = db.relationship('Player', foreign_keys=[challenged_id], backref='challenges_received')
    winner = db.relationship('Player', foreign_keys=[winner_id])
    no_show_player = db.relationship('Player', foreign_keys=[no_show_player_id])

    def __repr__(self):  # pragma: no cover - debug helper
        return f"<Challenge {self.id} {self.challenger_id}->{self.challenged_id} {self.status}>"

    @validates('status')
    def validate_status(self, key, value):
        if value not in CHALLENGE_STATUSES:
            raise ValueError(f'Unknown challenge status: {value}')
        return value

    @staticmethod
    def validate_new(
        challenger: Player | None,
        challenged: Player | None,
        challenge_date: date | None,
        challenge_time: time | None,
        today: date | None = None,
        enforce_ladder: bool = True,
    ) -> list[str]:
        errors: list[str] = []
        today = today or club_today()

        if challenger is None or challenged is None:
            errors.append('You must select an opponent')
        if challenge_date is None:
            errors.append('You must select a date')
        if challenge_time is None:
            errors.append('You must select a time')
        if errors:
            return errors

        if challenger.id == challenged.id:
            errors.append('A player cannot challenge themselves')
            return errors

        if challenge_date < today:
            errors.append('Challenge date cannot be in the past')
        elif enforce_ladder and challenge_date > today + timedelta(days=CHALLENGE_WINDOW_DAYS):
            errors.append(f'Challenges must be played within {CHALLENGE_WINDOW_DAYS} days')

        if enforce_ladder and not challenger.can_challenge(challenged):
            errors.append(f'You can only challenge players up to {MAX_CHALLENGE_DISTANCE} places above you')
        elif not enforce_ladder and (not challenger.is_ranked or not challenged.is_ranked):
            errors.append('Both players must be on the ladder')

        if Challenge.open_between(challenger.id, challenged.id):
            errors.append('There is already an open challenge between these players')

        return errors

    @classmethod
    def open_between(cls, first_id: int, second_id: int) -> 'Challenge | None':
        return cls.query.filter(
            cls.status.in_(OPEN_STATUSES),
            or_(
                and_(cls.challenger_id == first_id, cls.challenged_id == second_id),
                and_(cls.challenger_id == second_id, cls.challenged_id == first_id),
            ),
        ).first()

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES

    @property
    def scheduled_label(self) -> str:
        return f"{self.challenge_date.strftime('%Y-%m-%d')} at {self.challenge_time.strftime('%H:%M')}"

    @property
    def versus_display(self) -> str:
        return f"{self.challenger.full_name} vs {self.challenged.full_name}"

    def involves(self, player_id: int) -> bool:
        return player_id in (self.challenger_id, self.challenged_id)

    def opponent_of(self, player_id: int) -> Player | None:
        if self.challenger_id == player_id:
            return self.challenged
        if self.challenged_id == player_id:
            return self.challenger
        return None

    def _transition(self, new_status: str) -> None:
        allowed = ALLOWED_TRANSITIONS.get(self.status, set())
        if new_status not in allowed:
            raise ValueError(f'Cannot change a {self.status} challenge to {new_status}')
        self.status = new_status

    def _challenger_takes_position(self) -> bool:
        """Swap when the challenger is ranked below the challenged player."""
        challenger, challenged = self.challenger, self.challenged
        if not challenger.is_ranked or not challenged.is_ranked:
            return False
        if challenger.ranking_position > challenged.ranking_position:
            swap_positions(challenger, challenged)
            return True
        return False

    def accept(self) -> None:
        self._transition('accepted')

    def reject(self) -> None:
        self._transition('rejected')

    def cancel(self) -> None:
        self._transition('cancelled')

    def decline(self) -> bool:
        """A declined challenge is a walkover for the challenger."""
        self._transition('declined')
        self.winner_id = self.challenger_id
        return self._challenger_takes_position()

    def complete(self, winner_id: int, score: str) -> bool:
        """Record the result. Returns True if the ladder changed."""
        if winner_id not in (self.challenger_id, self.challenged_id):
            raise ValueError('Winner must be one of the two players')
        if not score or not score.strip():
            raise ValueError('Score is required')
        self._transition('completed')
        self.winner_id = winner_id
        self.score = score.strip()
        if winner_id == self.challenger_id:
            return self._challenger_takes_position()
        return False

    def mark_no_show(self, player_id: int) -> bool:
        """Walkover if the challenged player was absent; penalty drop otherwise."""
        if player_id not in (self.challenger_id, self.challenged_id):
            raise ValueError('Absent player must be one of the two players')
        self._transition('no_show')
        self.no_show_player_id = player_id
        if player_id == self.challenged_id:
            self.winner_id = self.challenger_id
            return self._challenger_takes_position()
        self.winner_id = self.challenged_id
        before = self.challenger.ranking_position
        return drop_positions(self.challenger, NO_SHOW_PENALTY) != before

    def postpone_for_rain(self) -> None:
        self._transition('postponed_rain')

    def reschedule(self, challenge_date: date, challenge_time: time) -> None:
        if self.status == 'postponed_rain':
            self._transition('accepted')
        elif self.status not in ('pending', 'accepted'):
            raise ValueError(f'Cannot reschedule a {self.status} challenge')
        self.challenge_date = challenge_date
        self.challenge_time = challenge_time


class Availability(db.Model):
    """Weekly two-hour blocks in which a player can play."""

    __tablename__ = 'availability'

    id = db.Column(db.Integer, primary_key=True)
    player_id = db.Column(db.Integer, db.ForeignKey('players.id'), nullable=False)
    day_of_week = db.Column(db.Integer, nullable=False)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    created_at = db.Column(db.DateTime, default=current_time)
    updated_at = db.Column(db.DateTime, default=current_time, onupdate=current_time)

    __table_args__ = (
        db.UniqueConstraint('player_id', 'day_of_week', 'start_time', name='unique_player_block'),
    )

    @validates('day_of_week')
    def validate_day(self, key, value):
        if value not in range(7):
            raise ValueError('Day of week must be between 0 and 6')
        return value

    @property
    def key(self) -> str:
        return availability_key(self.day_of_week, self.start_time, self.end_time)

    @staticmethod
    def parse_key(key: str) -> tuple[int, time, time]:
        parts = key.split('-')
        if len(parts) != 3:
            raise ValueError('Incomplete availability data')
        day_raw, start_raw, end_raw = parts
        try:
            day = int(day_raw)
            start, end = parse_hhmm(start_raw), parse_hhmm(end_raw)
        except ValueError:
            raise ValueError('Incomplete availability data')
        if day not in range(7) or (start, end) not in AVAILABILITY_BLOCKS:
            raise ValueError('Unknown availability block')
        return day, start, end

    @classmethod
    def keys_for_player(cls, player_id: int) -> set[str]:
        return {slot.key for slot in cls.query.filter_by(player_id=player_id).all()}

    @classmethod
    def replace_for_player(cls, player: Player, keys) -> list['Availability']:
        """Swap the player's weekly grid for the given keys; caller commits."""
        parsed = sorted({cls.parse_key(key) for key in keys})
        cls.query.filter_by(player_id=player.id).delete()
        rows = [
            cls(player_id=player.id, day_of_week=day, start_time=start, end_time=end)
            for day, start, end in parsed
        ]
        db.session.add_all(rows)
        return rows


def common_availability(first: Player, second: Player) -> list[tuple[int, time, time]]:
    """Blocks both players marked, ordered Monday first."""
    shared = Availability.keys_for_player(first.id) & Availability.keys_for_player(second.id)
    blocks = [Availability.parse_key(key) for key in shared]
    return sorted(blocks, key=lambda block: ((block[0] - 1) % 7, block[1]))


class Court(db.Model):
    __tablename__ = 'courts'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    has_lights = db.Column(db.Boolean, default=False)
    is_active = db.Column(db.Boolean, default=True)

    reservations = db.relationship('Reservation', backref='court', lazy=True, cascade='all, delete-orphan')

    def __repr__(self):  # pragma: no cover - debug helper
        return f"<Court {self.id} {self.name}>"

    @property
    def closing_hour(self) -> int:
        return CLOSING_HOUR_WITH_LIGHTS if self.has_lights else CLOSING_HOUR_WITHOUT_LIGHTS

    @property
    def hours_label(self) -> str:
        return f"{COURT_OPENING_HOUR:02d}:00 - {self.closing_hour:02d}:00"

    def reservations_on(self, for_date: date) -> list['Reservation']:
        return (
            Reservation.query.filter_by(court_id=self.id, reservation_date=for_date)
            .order_by(Reservation.start_time.asc())
            .all()
        )

    def time_slots(self, for_date: date) -> list[str]:
        """30-minute grid labelled with the longest game of the day."""
        longest = max(game_duration_minutes(game_type, for_date) for game_type in GAME_TYPES)
        closing = self.closing_hour * 60
        slots = []
        for start in range(COURT_OPENING_HOUR * 60, closing, SLOT_STEP_MINUTES):
            end = start + longest
            if end <= closing:
                slots.append(
                    f"{time_from_minutes(start).strftime('%H:%M')}-{time_from_minutes(end).strftime('%H:%M')}"
                )
        return slots

    def fits(self, for_date: date, start: time, game_type: str, reservations=None) -> bool:
        """True if a game of this type can start here without overlaps."""
        begin = minutes_of(start)
        end = begin + game_duration_minutes(game_type, for_date)
        if begin < COURT_OPENING_HOUR * 60 or end > self.closing_hour * 60:
            return False
        if reservations is None:
            reservations = self.reservations_on(for_date)
        return not any(r.overlaps_range(begin, end) for r in reservations)

    def available_slots(self, for_date: date, reservations=None) -> list[str]:
        """Slots whose singles window is free; recomputed on every read."""
        if reservations is None:
            reservations = self.reservations_on(for_date)
        available = []
        for slot in self.time_slots(for_date):
            start = parse_hhmm(slot.split('-')[0])
            if self.fits(for_date, start, 'singles', reservations):
                available.append(slot)
        return available

    def slot_board(self, for_date: date) -> list[dict]:
        reservations = self.reservations_on(for_date)
        available = set(self.available_slots(for_date, reservations))
        board = []
        for slot in self.time_slots(for_date):
            start = minutes_of(parse_hhmm(slot.split('-')[0]))
            occupant = next(
                (r for r in reservations if r.overlaps_range(start, start + SLOT_STEP_MINUTES)),
                None,
            )
            board.append(
                {
                    'label': slot,
                    'start': slot.split('-')[0],
                    'available': slot in available,
                    'game_types': [
                        game_type
                        for game_type in GAME_TYPES
                        if self.fits(for_date, parse_hhmm(slot.split('-')[0]), game_type, reservations)
                    ],
                    'reservation': occupant,
                }
            )
        return board


class Pricing(db.Model):
    __tablename__ = 'pricing'

    id = db.Column(db.Integer, primary_key=True)
    singles_price = db.Column(db.Integer, default=DEFAULT_SINGLES_PRICE)
    doubles_price = db.Column(db.Integer, default=DEFAULT_DOUBLES_PRICE)
    admin_email = db.Column(db.String(120))
    info_text = db.Column(db.Text)

    @classmethod
    def current(cls) -> 'Pricing':
        pricing = cls.query.order_by(cls.id.asc()).first()
        if pricing is None:
            pricing = cls(singles_price=DEFAULT_SINGLES_PRICE, doubles_price=DEFAULT_DOUBLES_PRICE)
        return pricing

    def price_for(self, game_type: str) -> int:
        if game_type == 'singles':
            return self.singles_price or DEFAULT_SINGLES_PRICE
        return self.doubles_price or DEFAULT_DOUBLES_PRICE


class Reservation(db.Model):
    __tablename__ = 'reservations'

    id = db.Column(db.Integer, primary_key=True)
    court_id = db.Column(db.Integer, db.ForeignKey('courts.id'), nullable=False)
    reservation_date = db.Column(db.Date, nullable=False)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    game_type = db.Column(db.String(20), nullable=False)
    player_names = db.Column(db.JSON, default=list)
    total_cost = db.Column(db.Integer, default=0)
    contact_info = db.Column(db.String(120), nullable=False)
    created_at = db.Column(db.DateTime, default=current_time)

    def __repr__(self):  # pragma: no cover - debug helper
        return f"<Reservation {self.id} court={self.court_id} {self.reservation_date} {self.start_time}>"

    @validates('game_type')
    def validate_game_type(self, key, value):
        if value not in GAME_TYPES:
            raise ValueError(f'Unknown game type: {value}')
        return value

    @property
    def slot_label(self) -> str:
        return f"{self.start_time.strftime('%H:%M')}-{self.end_time.strftime('%H:%M')}"

    @property
    def game_label(self) -> str:
        return 'Singles' if self.game_type == 'singles' else 'Doubles'

    def overlaps_range(self, start_minutes: int, end_minutes: int) -> bool:
        return minutes_of(self.start_time) < end_minutes and start_minutes < minutes_of(self.end_time)

    def to_payload(self) -> dict:
        return {
            'court_id': self.court_id,
            'reservation_date': self.reservation_date.isoformat(),
            'start_time': self.start_time.strftime('%H:%M'),
            'end_time': self.end_time.strftime('%H:%M'),
            'game_type': self.game_type,
            'player_names': list(self.player_names or []),
            'total_cost': self.total_cost,
            'contact_info': self.contact_info,
        }

    @staticmethod
    def validate_form(
        slot: str,
        game_type: str,
        player_names: list[str],
        contact_info: str,
        for_date: date,
        today: date | None = None,
    ) -> list[str]:
        errors: list[str] = []
        today = today or club_today()

        if not slot or not game_type or not contact_info or not contact_info.strip():
            errors.append('All fields are required')
            return errors

        if game_type not in GAME_TYPES:
            errors.append('Choose singles or doubles')
            return errors

        expected = PLAYERS_PER_GAME[game_type]
        names = [name.strip() for name in player_names[:expected] if name and name.strip()]
        if len(names) != expected:
            errors.append(f'You must enter {expected} player surnames')

        if for_date < today:
            errors.append('Reservation date cannot be in the past')

        return errors


class Notification(db.Model):
    """In-app notifications shown on the player dashboard."""

    __tablename__ = 'notification'

    id = db.Column(db.Integer, primary_key=True)
    player_id = db.Column(db.Integer, db.ForeignKey('players.id'), nullable=False)
    message = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(40), default='info')
    link_target = db.Column(db.String(255))
    is_read = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=current_time)

    def __repr__(self):  # pragma: no cover - debug helper
        return f"<Notification {self.id} player={self.player_id} read={self.is_read}>"

    def mark_read(self):
        self.is_read = True

    @classmethod
    def active_for_player(cls, player_id: int):
        return cls.query.filter_by(player_id=player_id, is_read=False).order_by(cls.created_at.desc())


def init_default_data():
    """Initialize default data for the application."""

    ensure_schema_integrity()

    admin_email = os.environ.get('ADMIN_EMAIL', 'admin@clubladder.local')
    admin = Player.query.filter_by(is_admin=True).first()
    if not admin:
        admin = Player(
            email=admin_email,
            first_name='Club',
            last_name='Admin',
            ranking_position=0,
            is_admin=True,
        )
        admin.set_password(os.environ.get('ADMIN_PASSWORD', 'admin1234'))
        db.session.add(admin)

    if not Court.query.first():
        db.session.add_all(
            [
                Court(name='Court 1', has_lights=True),
                Court(name='Court 2', has_lights=True),
                Court(name='Court 3', has_lights=False),
            ]
        )

    if not Pricing.query.first():
        db.session.add(
            Pricing(
                singles_price=DEFAULT_SINGLES_PRICE,
                doubles_price=DEFAULT_DOUBLES_PRICE,
                admin_email=admin_email,
                info_text='Ask at the front desk for prices and promotions.',
            )
        )

    db.session.commit()


def ensure_schema_integrity():
    """Apply lightweight schema updates required for new fields."""

    inspector = inspect(db.engine)

    try:
        challenge_columns = {col['name'] for col in inspector.get_columns('challenges')}
    except Exception:
        return

    migrations: list[str] = []
    if 'no_show_player_id' not in challenge_columns:
        migrations.append('ALTER TABLE challenges ADD COLUMN no_show_player_id INTEGER')
    if 'created_by_admin' not in challenge_columns:
        migrations.append('ALTER TABLE challenges ADD COLUMN created_by_admin BOOLEAN DEFAULT 0')

    try:
        pricing_columns = {col['name'] for col in inspector.get_columns('pricing')}
    except Exception:
        pricing_columns = None

    if pricing_columns is not None and 'info_text' not in pricing_columns:
        migrations.append('ALTER TABLE pricing ADD COLUMN info_text TEXT')

    for ddl in migrations:
        logger.info('Applying schema update: %s', ddl)
        with db.engine.begin() as connection:
            connection.execute(text(ddl))
