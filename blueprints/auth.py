from flask import Blueprint, render_template, request, redirect, url_for, session, flash, g, current_app
from models import (
    db,
    Player,
    current_time,
    next_ranking_position,
    ranking_position_taken,
)
from functools import wraps
import hmac

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


# Helper function - load current player
def load_current_user():
    """Load player into g.current_user for easy access"""
    if 'player_id' in session:
        g.current_user = db.session.get(Player, session['player_id'])
    else:
        g.current_user = None


def is_club_member() -> bool:
    return bool(getattr(g, 'current_user', None)) or session.get('is_member') is True


# Decorators for authentication
def login_required(f):
    """Require any logged-in player"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not g.current_user:
            flash('Please log in to access this page.', 'error')
            return redirect(url_for('auth.login'))
        return f(*args, **kwargs)
    return decorated_function


def require_admin(f):
    """Require an admin account"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not g.current_user:
            flash('Please log in to access this page.', 'error')
            return redirect(url_for('auth.login'))

        if not g.current_user.is_admin:
            flash('Please use an admin account to access this page.', 'error')
            return redirect(url_for('auth.login'))
        return f(*args, **kwargs)
    return decorated_function


def require_member(f):
    """Require club access, either a player session or the shared member login"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not is_club_member():
            flash('Please log in as a club member to book courts.', 'error')
            return redirect(url_for('auth.member_login'))
        return f(*args, **kwargs)
    return decorated_function


def check_player_uniqueness(email, ranking_position=None):
    """
    Check if email or ladder position is already in use.
    Returns list of errors. Requires Flask app context.
    """
    errors = []

    if Player.query.filter_by(email=email.strip().lower()).first():
        errors.append("Email already registered")

    if ranking_position and ranking_position_taken(ranking_position):
        errors.append(f"Ranking position #{ranking_position} is already taken")

    return errors


def _start_session(player):
    session.clear()
    session['player_id'] = player.id
    session['email'] = player.email
    session['is_admin'] = bool(player.is_admin)
    session['logged_in_at'] = current_time().isoformat()
    session.modified = True


@auth_bp.route('/register', methods=['GET', 'POST'])
def register():
    """Player registration; new players join the ladder immediately"""
    if request.method == 'POST':
        email = request.form.get('email', '').strip()
        password = request.form.get('password', '')
        first_name = request.form.get('first_name', '').strip()
        last_name = request.form.get('last_name', '').strip()
        position_raw = request.form.get('ranking_position', '').strip()

        # Validate format (no DB queries)
        errors = Player.validate_format(email, password, first_name, last_name, position_raw)
        ranking_position = int(position_raw) if position_raw and not errors else None

        # Check uniqueness (requires DB queries)
        if not errors:
            errors.extend(check_player_uniqueness(email, ranking_position))

        if errors:
            for error in errors:
                flash(error, 'error')
            return render_template('auth/register.html', form=request.form)

        player = Player(
            email=email,
            first_name=first_name,
            last_name=last_name,
            ranking_position=ranking_position or next_ranking_position(),
        )
        player.set_password(password)

        try:
            db.session.add(player)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            current_app.logger.exception('Error creating player profile for %s', email)
            flash(f'Error during registration: {str(e)}', 'error')
            return render_template('auth/register.html', form=request.form)

        current_app.logger.info('Registered player %s at #%s', player.email, player.ranking_position)
        _start_session(player)
        flash(f'Registration successful! You start at position #{player.ranking_position}.', 'success')
        return redirect(url_for('ladder.dashboard'))

    return render_template('auth/register.html', form={})


@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    """Unified login for players and admins"""
    if request.method == 'POST':
        email = request.form.get('email', '').strip().lower()
        password = request.form.get('password', '')

        player = Player.query.filter_by(email=email).first()

        if player and player.check_password(password):
            _start_session(player)
            flash(f'Login successful! Welcome, {player.first_name}.', 'success')

            if player.is_admin:
                return redirect(url_for('admin.panel'))
            return redirect(url_for('ladder.dashboard'))

        flash('Invalid email or password.', 'error')

    return render_template('auth/login.html')


@auth_bp.route('/member-login', methods=['GET', 'POST'])
def member_login():
    """Shared club credentials that unlock court booking only"""
    if request.method == 'POST':
        username = request.form.get('username', '').strip().lower()
        password = request.form.get('password', '')

        expected_user = current_app.config['MEMBER_USERNAME'].lower()
        expected_password = current_app.config['MEMBER_PASSWORD']
        if hmac.compare_digest(username.encode(), expected_user.encode()) and hmac.compare_digest(
            password.encode(), expected_password.encode()
        ):
            session['is_member'] = True
            flash('Welcome! You can now book courts.', 'success')
            return redirect(url_for('courts.court_list'))

        flash('Invalid username or password.', 'error')

    return render_template('auth/member-login.html')


@auth_bp.route('/logout')
def logout():
    """Logout player or club member"""
    session.clear()
    flash('You have been logged out.', 'info')
    return redirect(url_for('index'))
