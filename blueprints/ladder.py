from flask import Blueprint, render_template, request, redirect, url_for, flash, g, abort, current_app
from sqlalchemy.orm import joinedload
from datetime import datetime

from models import (
    db,
    Player,
    Challenge,
    Availability,
    Notification,
    AVAILABILITY_BLOCKS,
    WEEKDAY_NAMES,
    PLAYER_CHALLENGE_TIMES,
    MAX_CHALLENGE_DISTANCE,
    CHALLENGE_WINDOW_DAYS,
    availability_key,
    club_today,
    common_availability,
    parse_hhmm,
    ranked_players,
)
from blueprints.auth import login_required

ladder_bp = Blueprint('ladder', __name__, url_prefix='/ladder')


def _challenge_query():
    return Challenge.query.options(
        joinedload(Challenge.challenger),
        joinedload(Challenge.challenged),
        joinedload(Challenge.winner),
    )


def _parse_challenge_form(form):
    """Read opponent, date and time fields; malformed values count as missing."""
    opponent = None
    opponent_raw = form.get('opponent_id', '').strip()
    if opponent_raw.isdigit():
        opponent = db.session.get(Player, int(opponent_raw))

    challenge_date = None
    date_raw = form.get('challenge_date', '').strip()
    if date_raw:
        try:
            challenge_date = datetime.strptime(date_raw, '%Y-%m-%d').date()
        except ValueError:
            challenge_date = None

    challenge_time = None
    time_raw = form.get('challenge_time', '').strip()
    if time_raw:
        try:
            challenge_time = parse_hhmm(time_raw)
        except ValueError:
            challenge_time = None

    return opponent, challenge_date, challenge_time


def _own_challenge_or_403(challenge_id):
    challenge = _challenge_query().filter(Challenge.id == challenge_id).first_or_404()
    if not challenge.involves(g.current_user.id):
        abort(403)
    return challenge


@ladder_bp.route('/dashboard')
@login_required
def dashboard():
    """Player dashboard with stats, quick actions and the top of the ladder."""
    player = g.current_user
    my_challenges = player.challenges().all()

    stats = {
        'total_players': len(ranked_players()),
        'pending_challenges': len([c for c in my_challenges if c.status == 'pending']),
        'completed_matches': len([c for c in my_challenges if c.status == 'completed']),
    }

    top_players = ranked_players()[:10]
    notifications_preview = Notification.active_for_player(player.id).limit(6).all()

    return render_template(
        'ladder/dashboard.html',
        player=player,
        stats=stats,
        top_players=top_players,
        notifications_preview=notifications_preview,
    )


@ladder_bp.route('/challenge', methods=['GET', 'POST'])
@login_required
def new_challenge():
    """Challenge a player up to five places above."""
    player = g.current_user
    opponents = player.challengeable_opponents()

    if request.method == 'POST':
        opponent, challenge_date, challenge_time = _parse_challenge_form(request.form)

        errors = Challenge.validate_new(player, opponent, challenge_date, challenge_time, today=club_today())
        if challenge_time and challenge_time.strftime('%H:%M') not in PLAYER_CHALLENGE_TIMES:
            errors.append('Choose one of the listed time slots')

        if errors:
            for error in errors:
                flash(error, 'error')
            return redirect(url_for('ladder.new_challenge', opponent_id=request.form.get('opponent_id', '')))

        try:
            challenge = Challenge(
                challenger_id=player.id,
                challenged_id=opponent.id,
                challenge_date=challenge_date,
                challenge_time=challenge_time,
                status='pending',
            )
            db.session.add(challenge)
            opponent.notify(
                f'{player.full_name} (#{player.ranking_position}) challenged you for '
                f'{challenge_date.strftime("%Y-%m-%d")} at {challenge_time.strftime("%H:%M")}.',
                category='info',
                link_target=url_for('ladder.manage_challenges'),
            )
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            current_app.logger.exception('Error creating challenge')
            flash(f'Error creating challenge: {str(e)}', 'error')
            return redirect(url_for('ladder.new_challenge'))

        current_app.logger.info('Challenge %s created: %s -> %s', challenge.id, player.id, opponent.id)
        flash('Challenge sent successfully!', 'success')
        return redirect(url_for('ladder.manage_challenges'))

    selected = None
    shared_blocks = []
    selected_raw = request.args.get('opponent_id', '')
    if selected_raw.isdigit():
        selected = next((p for p in opponents if p.id == int(selected_raw)), None)
        if selected:
            shared_blocks = [
                {'day': WEEKDAY_NAMES[day], 'start': start, 'end': end}
                for day, start, end in common_availability(player, selected)
            ]

    return render_template(
        'ladder/challenge.html',
        player=player,
        opponents=opponents,
        selected=selected,
        shared_blocks=shared_blocks,
        time_options=PLAYER_CHALLENGE_TIMES,
        min_date=club_today().strftime('%Y-%m-%d'),
        max_distance=MAX_CHALLENGE_DISTANCE,
        window_days=CHALLENGE_WINDOW_DAYS,
    )


@ladder_bp.route('/challenges')
@login_required
def manage_challenges():
    """Received, sent and completed challenges for the current player."""
    player = g.current_user

    received = (
        _challenge_query()
        .filter(Challenge.challenged_id == player.id)
        .order_by(Challenge.created_at.desc())
        .all()
    )
    sent = (
        _challenge_query()
        .filter(Challenge.challenger_id == player.id)
        .order_by(Challenge.created_at.desc())
        .all()
    )
    history = (
        _challenge_query()
        .filter((Challenge.challenger_id == player.id) | (Challenge.challenged_id == player.id))
        .filter(Challenge.status == 'completed')
        .order_by(Challenge.updated_at.desc())
        .all()
    )

    return render_template(
        'ladder/challenges.html',
        player=player,
        received=received,
        sent=sent,
        history=history,
        pending_received=len([c for c in received if c.status == 'pending']),
    )


@ladder_bp.route('/challenges/<int:challenge_id>/respond', methods=['POST'])
@login_required
def respond_challenge(challenge_id):
    """Accept or decline a challenge you received."""
    challenge = _own_challenge_or_403(challenge_id)
    action = request.form.get('action')

    if challenge.challenged_id != g.current_user.id:
        flash('Only the challenged player can answer this challenge.', 'error')
        return redirect(url_for('ladder.manage_challenges'))

    try:
        if action == 'accept':
            challenge.accept()
            message = f'{g.current_user.full_name} accepted your challenge.'
        elif action == 'decline':
            swapped = challenge.decline()
            message = f'{g.current_user.full_name} declined your challenge.'
            if swapped:
                message += ' You take their ranking position.'
        else:
            flash('Unsupported action.', 'error')
            return redirect(url_for('ladder.manage_challenges'))

        challenge.challenger.notify(message, link_target=url_for('ladder.manage_challenges'))
        db.session.commit()
    except ValueError as e:
        db.session.rollback()
        flash(str(e), 'error')
        return redirect(url_for('ladder.manage_challenges'))

    label = 'accepted' if action == 'accept' else 'declined'
    flash(f'Challenge {label} successfully.', 'success')
    return redirect(url_for('ladder.manage_challenges'))


@ladder_bp.route('/challenges/<int:challenge_id>/result', methods=['POST'])
@login_required
def report_result(challenge_id):
    """Either player reports the result of an accepted challenge."""
    challenge = _own_challenge_or_403(challenge_id)

    winner_raw = request.form.get('winner_id', '').strip()
    score = request.form.get('score', '').strip()
    if not winner_raw.isdigit() or not score:
        flash('Winner and score are required.', 'error')
        return redirect(url_for('ladder.manage_challenges'))

    try:
        swapped = challenge.complete(int(winner_raw), score)
        opponent = challenge.opponent_of(g.current_user.id)
        opponent.notify(
            f'{g.current_user.full_name} reported {challenge.versus_display}: {challenge.score}.',
            link_target=url_for('ladder.manage_challenges'),
        )
        db.session.commit()
    except ValueError as e:
        db.session.rollback()
        flash(str(e), 'error')
        return redirect(url_for('ladder.manage_challenges'))

    if swapped:
        flash('Result reported. Ranking positions were swapped.', 'success')
    else:
        flash('Result reported successfully.', 'success')
    return redirect(url_for('ladder.manage_challenges'))


@ladder_bp.route('/availability', methods=['GET', 'POST'])
@login_required
def availability():
    """Weekly availability grid; saving replaces every stored block."""
    player = g.current_user

    if request.method == 'POST':
        try:
            Availability.replace_for_player(player, request.form.getlist('slots'))
            db.session.commit()
            flash('Availability saved successfully.', 'success')
        except ValueError as e:
            db.session.rollback()
            flash(f'Error saving availability: {e}', 'error')
        except Exception as e:
            db.session.rollback()
            current_app.logger.exception('Error saving availability for player %s', player.id)
            flash(f'Error saving availability: {e}', 'error')
        return redirect(url_for('ladder.availability'))

    selected = Availability.keys_for_player(player.id)
    days = [(index, WEEKDAY_NAMES[index]) for index in (1, 2, 3, 4, 5, 6, 0)]
    grid = [
        {
            'index': index,
            'name': name,
            'cells': [
                {
                    'key': availability_key(index, start, end),
                    'checked': availability_key(index, start, end) in selected,
                }
                for start, end in AVAILABILITY_BLOCKS
            ],
        }
        for index, name in days
    ]

    return render_template(
        'ladder/availability.html',
        grid=grid,
        blocks=AVAILABILITY_BLOCKS,
    )


@ladder_bp.route('/profile', methods=['GET', 'POST'])
@login_required
def profile():
    """Update name fields and show the match record."""
    player = g.current_user

    if request.method == 'POST':
        first_name = request.form.get('first_name', '').strip()
        last_name = request.form.get('last_name', '').strip()

        if not first_name or not last_name:
            flash('First and last name are required.', 'error')
            return redirect(url_for('ladder.profile'))

        try:
            player.first_name = first_name
            player.last_name = last_name
            db.session.commit()
            flash('Profile updated successfully.', 'success')
        except Exception as e:
            db.session.rollback()
            current_app.logger.exception('Error updating profile for player %s', player.id)
            flash(f'Error updating profile: {e}', 'error')
        return redirect(url_for('ladder.profile'))

    return render_template('ladder/profile.html', player=player, record=player.match_record())


@ladder_bp.route('/notifications')
@login_required
def notifications():
    """Notification center for players."""
    status_filter = request.args.get('status', 'unread')
    query = Notification.query.filter_by(player_id=g.current_user.id)
    if status_filter != 'all':
        query = query.filter(Notification.is_read.is_(False))

    notifications_list = query.order_by(Notification.created_at.desc()).all()
    return render_template(
        'ladder/notifications.html',
        notifications=notifications_list,
        status_filter=status_filter,
    )


@ladder_bp.route('/notifications/<int:notification_id>/read', methods=['POST'])
@login_required
def mark_notification_read(notification_id):
    note = Notification.query.filter_by(id=notification_id, player_id=g.current_user.id).first_or_404()
    note.mark_read()
    db.session.commit()
    flash('Notification updated.', 'success')
    return redirect(url_for('ladder.notifications'))
