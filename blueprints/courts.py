from flask import Blueprint, render_template, request, redirect, url_for, flash, jsonify, current_app
from datetime import datetime

from models import (
    db,
    Court,
    Pricing,
    Reservation,
    GAME_TYPES,
    PLAYERS_PER_GAME,
    club_today,
    game_duration_minutes,
    minutes_of,
    parse_hhmm,
    time_from_minutes,
)
from blueprints.auth import require_member

courts_bp = Blueprint('courts', __name__, url_prefix='/courts')
api_bp = Blueprint('api', __name__, url_prefix='/api')


def _selected_date(raw):
    """Date from the query string, today when missing or malformed"""
    if raw:
        try:
            return datetime.strptime(raw.strip(), '%Y-%m-%d').date()
        except ValueError:
            flash('Invalid date, showing today instead.', 'warning')
    return club_today()


def log_reservation_notice(reservation: dict, court: dict, admin_email: str | None) -> None:
    """Record a new booking for the club admin; there is no mail delivery."""
    current_app.logger.info(
        'New reservation: court=%s date=%s time=%s-%s game=%s players=%s contact=%s cost=%s admin=%s',
        court['name'],
        reservation['reservation_date'],
        reservation['start_time'],
        reservation['end_time'],
        reservation['game_type'],
        ', '.join(reservation['player_names']),
        reservation['contact_info'],
        reservation['total_cost'],
        admin_email,
    )


@courts_bp.route('/')
@require_member
def court_list():
    """Courts with opening hours and current prices"""
    courts = Court.query.filter(Court.is_active.isnot(False)).order_by(Court.id.asc()).all()
    return render_template('courts/list.html', courts=courts, pricing=Pricing.current())


@courts_bp.route('/<int:court_id>')
@require_member
def court_calendar(court_id):
    """Slot board for one court and day"""
    court = Court.query.get_or_404(court_id)
    selected_date = _selected_date(request.args.get('date'))

    return render_template(
        'courts/calendar.html',
        court=court,
        selected_date=selected_date,
        board=court.slot_board(selected_date),
        pricing=Pricing.current(),
        game_types=GAME_TYPES,
        players_per_game=PLAYERS_PER_GAME,
        durations={game_type: game_duration_minutes(game_type, selected_date) for game_type in GAME_TYPES},
        min_date=club_today().strftime('%Y-%m-%d'),
    )


@courts_bp.route('/<int:court_id>/reserve', methods=['POST'])
@require_member
def reserve(court_id):
    """Book a slot; the game type decides how long the court is held"""
    court = Court.query.get_or_404(court_id)
    date_raw = request.form.get('reservation_date', '').strip()
    slot = request.form.get('slot', '').strip()
    game_type = request.form.get('game_type', '').strip()
    player_names = request.form.getlist('player_names')
    contact_info = request.form.get('contact_info', '').strip()

    try:
        reservation_date = datetime.strptime(date_raw, '%Y-%m-%d').date()
    except ValueError:
        flash('All fields are required', 'error')
        return redirect(url_for('courts.court_calendar', court_id=court.id))

    back = url_for('courts.court_calendar', court_id=court.id, date=reservation_date.strftime('%Y-%m-%d'))

    errors = Reservation.validate_form(slot, game_type, player_names, contact_info, reservation_date, today=club_today())
    start_time = None
    if not errors:
        try:
            start_time = parse_hhmm(slot.split('-')[0])
        except ValueError:
            errors.append('Choose one of the listed time slots')

    if errors:
        for error in errors:
            flash(error, 'error')
        return redirect(back)

    # Re-check against current bookings; the board may be stale.
    if not court.fits(reservation_date, start_time, game_type):
        flash('That time is no longer available for this game type. Please pick another slot.', 'error')
        return redirect(back)

    end_time = time_from_minutes(minutes_of(start_time) + game_duration_minutes(game_type, reservation_date))
    pricing = Pricing.current()
    names = [name.strip() for name in player_names[:PLAYERS_PER_GAME[game_type]]]

    try:
        reservation = Reservation(
            court_id=court.id,
            reservation_date=reservation_date,
            start_time=start_time,
            end_time=end_time,
            game_type=game_type,
            player_names=names,
            total_cost=pricing.price_for(game_type),
            contact_info=contact_info,
        )
        db.session.add(reservation)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception('Error creating reservation on court %s', court.id)
        flash(f'Error creating reservation: {e}', 'error')
        return redirect(back)

    log_reservation_notice(reservation.to_payload(), {'id': court.id, 'name': court.name}, pricing.admin_email)
    flash(
        f'Reservation confirmed: {court.name} on {reservation_date.strftime("%Y-%m-%d")} '
        f'{reservation.slot_label} ({reservation.game_label}). Total: ${reservation.total_cost}.',
        'success',
    )
    return redirect(back)


@api_bp.route('/send-notification', methods=['POST'])
def send_notification():
    """Log a reservation notice posted as JSON"""
    try:
        body = request.get_json(force=True)
        log_reservation_notice(body['reservation'], body['court'], body.get('adminEmail'))
    except Exception:
        current_app.logger.exception('Error sending notification')
        return jsonify({'success': False, 'error': 'Error sending notification'}), 500

    return jsonify({'success': True, 'message': 'Notification sent'})
