from flask import Blueprint, render_template, request, redirect, url_for, flash, g, current_app
from sqlalchemy import func
from sqlalchemy.orm import joinedload
from datetime import datetime

from models import (
    db,
    Player,
    Challenge,
    ADMIN_CHALLENGE_TIMES,
    CHALLENGE_STATUSES,
    club_today,
    parse_hhmm,
    ranked_players,
    set_ranking_position,
)
from blueprints.auth import require_admin

admin_bp = Blueprint('admin', __name__, url_prefix='/admin')

PANEL_TABS = ('players', 'challenges', 'calendar', 'stats')
CHALLENGE_ACTIONS = ('approve', 'reject', 'cancel', 'no_show', 'rain', 'reschedule', 'result')


def _parse_date(value):
    try:
        return datetime.strptime((value or '').strip(), '%Y-%m-%d').date()
    except ValueError:
        return None


def _parse_time(value):
    try:
        return parse_hhmm((value or '').strip())
    except ValueError:
        return None


def _challenge_query():
    return Challenge.query.options(
        joinedload(Challenge.challenger),
        joinedload(Challenge.challenged),
        joinedload(Challenge.winner),
    )


def _calendar():
    """Non-cancelled challenges grouped by date, each day sorted by time."""
    challenges = (
        _challenge_query()
        .filter(Challenge.status != 'cancelled')
        .order_by(Challenge.challenge_date.asc(), Challenge.challenge_time.asc())
        .all()
    )
    days = []
    for challenge in challenges:
        if not days or days[-1]['date'] != challenge.challenge_date:
            days.append({'date': challenge.challenge_date, 'challenges': []})
        days[-1]['challenges'].append(challenge)
    return days


def _stats():
    counts = dict(
        db.session.query(Challenge.status, func.count(Challenge.id)).group_by(Challenge.status).all()
    )
    per_status = {status: counts.get(status, 0) for status in CHALLENGE_STATUSES}

    winners = (
        db.session.query(Player, func.count(Challenge.id).label('wins'))
        .join(Challenge, Challenge.winner_id == Player.id)
        .filter(Challenge.status == 'completed')
        .group_by(Player.id)
        .order_by(func.count(Challenge.id).desc(), Player.ranking_position.asc())
        .limit(5)
        .all()
    )

    return {
        'ranked_players': len(ranked_players()),
        'total_challenges': sum(per_status.values()),
        'per_status': per_status,
        'top_winners': [{'player': player, 'wins': wins} for player, wins in winners],
    }


@admin_bp.route('/')
@require_admin
def panel():
    """Admin panel with players, challenges, calendar and stats tabs"""
    tab = request.args.get('tab', 'players')
    if tab not in PANEL_TABS:
        tab = 'players'

    players = (
        Player.query.filter(Player.id != g.current_user.id)
        .order_by((Player.ranking_position == 0).asc(), Player.ranking_position.asc(), Player.last_name.asc())
        .all()
    )
    challenges = _challenge_query().order_by(Challenge.created_at.desc()).limit(20).all()

    return render_template(
        'admin/panel.html',
        tab=tab,
        players=players,
        ladder=ranked_players(),
        challenges=challenges,
        calendar=_calendar() if tab == 'calendar' else [],
        stats=_stats() if tab == 'stats' else None,
        time_options=ADMIN_CHALLENGE_TIMES,
        min_date=club_today().strftime('%Y-%m-%d'),
    )


@admin_bp.route('/players/<int:player_id>/ranking', methods=['POST'])
@require_admin
def update_ranking(player_id):
    """Set a player's ladder position; the current holder takes the old one"""
    player = Player.query.get_or_404(player_id)
    position_raw = request.form.get('ranking_position', '').strip()

    if not position_raw.lstrip('-').isdigit():
        flash('Ranking position must be a whole number.', 'error')
        return redirect(url_for('admin.panel', tab='players'))

    try:
        set_ranking_position(player, int(position_raw))
        db.session.commit()
    except ValueError as e:
        db.session.rollback()
        flash(str(e), 'error')
        return redirect(url_for('admin.panel', tab='players'))

    current_app.logger.info('Admin %s set player %s to #%s', g.current_user.id, player.id, player.ranking_position)
    flash(f'{player.full_name} is now at position #{player.ranking_position}.', 'success')
    return redirect(url_for('admin.panel', tab='players'))


@admin_bp.route('/challenges/<int:challenge_id>/action', methods=['POST'])
@require_admin
def challenge_action(challenge_id):
    """Approve, reject, cancel, record a result or handle a no-show or rain delay"""
    challenge = _challenge_query().filter(Challenge.id == challenge_id).first_or_404()
    action = request.form.get('action', '')
    next_url = request.form.get('next') or url_for('admin.panel', tab='challenges')

    if action not in CHALLENGE_ACTIONS:
        flash('Unsupported action.', 'error')
        return redirect(next_url)

    ladder_changed = False
    try:
        if action == 'approve':
            challenge.accept()
        elif action == 'reject':
            challenge.reject()
        elif action == 'cancel':
            challenge.cancel()
        elif action == 'rain':
            challenge.postpone_for_rain()
        elif action == 'no_show':
            absent_raw = request.form.get('player_id', '').strip()
            if not absent_raw.isdigit():
                raise ValueError('Select the player who did not show up')
            ladder_changed = challenge.mark_no_show(int(absent_raw))
        elif action == 'reschedule':
            new_date = _parse_date(request.form.get('challenge_date'))
            new_time = _parse_time(request.form.get('challenge_time'))
            if new_date is None or new_time is None:
                raise ValueError('A new date and time are required')
            if new_date < club_today():
                raise ValueError('Challenge date cannot be in the past')
            challenge.reschedule(new_date, new_time)
        elif action == 'result':
            winner_raw = request.form.get('winner_id', '').strip()
            if not winner_raw.isdigit():
                raise ValueError('Winner must be one of the two players')
            ladder_changed = challenge.complete(int(winner_raw), request.form.get('score', ''))

        for participant in (challenge.challenger, challenge.challenged):
            participant.notify(
                f'Club admin updated {challenge.versus_display}: {challenge.status.replace("_", " ")}.',
                link_target=url_for('ladder.manage_challenges'),
            )
        db.session.commit()
    except ValueError as e:
        db.session.rollback()
        flash(str(e), 'error')
        return redirect(next_url)
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception('Error updating challenge %s', challenge_id)
        flash(f'Error updating challenge: {e}', 'error')
        return redirect(next_url)

    current_app.logger.info('Admin %s applied %s to challenge %s', g.current_user.id, action, challenge.id)
    message = f'Challenge {challenge.versus_display} is now {challenge.status.replace("_", " ")}.'
    if ladder_changed:
        message += ' Ladder positions updated.'
    flash(message, 'success')
    return redirect(next_url)


@admin_bp.route('/challenges/new', methods=['POST'])
@require_admin
def create_challenge():
    """Schedule a challenge between any two ranked players, already accepted"""
    challenger = None
    challenged = None
    challenger_raw = request.form.get('challenger_id', '').strip()
    challenged_raw = request.form.get('challenged_id', '').strip()
    if challenger_raw.isdigit():
        challenger = db.session.get(Player, int(challenger_raw))
    if challenged_raw.isdigit():
        challenged = db.session.get(Player, int(challenged_raw))

    challenge_date = _parse_date(request.form.get('challenge_date'))
    challenge_time = _parse_time(request.form.get('challenge_time'))

    errors = Challenge.validate_new(
        challenger, challenged, challenge_date, challenge_time, today=club_today(), enforce_ladder=False
    )
    if challenge_time and challenge_time.strftime('%H:%M') not in ADMIN_CHALLENGE_TIMES:
        errors.append('Choose one of the listed time slots')

    if errors:
        for error in errors:
            flash(error, 'error')
        return redirect(url_for('admin.panel', tab='challenges'))

    try:
        challenge = Challenge(
            challenger_id=challenger.id,
            challenged_id=challenged.id,
            challenge_date=challenge_date,
            challenge_time=challenge_time,
            status='accepted',
            created_by_admin=True,
        )
        db.session.add(challenge)
        for participant in (challenger, challenged):
            participant.notify(
                f'The club scheduled {challenger.full_name} vs {challenged.full_name} for '
                f'{challenge_date.strftime("%Y-%m-%d")} at {challenge_time.strftime("%H:%M")}.',
                link_target=url_for('ladder.manage_challenges'),
            )
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception('Error creating admin challenge')
        flash(f'Error creating challenge: {e}', 'error')
        return redirect(url_for('admin.panel', tab='challenges'))

    flash('Challenge created successfully!', 'success')
    return redirect(url_for('admin.panel', tab='challenges'))
