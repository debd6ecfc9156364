from flask import Blueprint, request, jsonify
from roomkeeper.services.conflict_service import ConflictDetector
from roomkeeper.services.reservation_service import ReservationService
from roomkeeper.utils.decorators import token_required, privileged_required
from roomkeeper.utils.errors import ValidationError
from roomkeeper.utils.validators import json_body, require, optional_int, optional_date, interval

reservations_bp = Blueprint('reservations', __name__)

@reservations_bp.route('/validate', methods=['POST'])
def validate_reservation():
    data = json_body()
    require(data, 'room_id')
    on_date, start, end = interval(data)

    result = ConflictDetector.validate(
        room_id=optional_int(data, 'room_id'),
        on_date=on_date,
        start=start,
        end=end,
        exclude_reservation_id=data.get('exclude_reservation_id')
    )
    return jsonify(result), 200

@reservations_bp.route('/', methods=['POST'])
@token_required
def create_reservation(current_user):
    data = json_body()
    require(data, 'room_id', 'program_type_id', 'requester_name', 'requester_email')
    on_date, start, end = interval(data)

    reservation = ReservationService.create_reservation(current_user, {
        'room_id': optional_int(data, 'room_id'),
        'location_id': optional_int(data, 'location_id'),
        'program_type_id': optional_int(data, 'program_type_id'),
        'date': on_date,
        'start_minute': start,
        'end_minute': end,
        'requester_name': data['requester_name'],
        'requester_email': data['requester_email'],
        'requester_phone': data.get('requester_phone'),
        'library_card_id': data.get('library_card_id'),
        'organization_name': data.get('organization_name'),
        'notes': data.get('notes')
    })
    return jsonify(reservation.to_dict()), 201

@reservations_bp.route('/', methods=['GET'])
@token_required
def list_reservations(current_user):
    filters = {
        'location_id': optional_int(request.args, 'location_id'),
        'room_id': optional_int(request.args, 'room_id'),
        'status': request.args.get('status'),
        'date_from': optional_date(request.args, 'date_from'),
        'date_to': optional_date(request.args, 'date_to')
    }
    reservations = ReservationService.list_reservations(current_user, filters)
    return jsonify([r.to_dict() for r in reservations])

@reservations_bp.route('/<reservation_id>', methods=['GET'])
@token_required
def get_reservation(current_user, reservation_id):
    reservation = ReservationService.get(reservation_id)
    ReservationService.require_owner_or_manager(current_user, reservation)
    return jsonify(reservation.to_dict())

@reservations_bp.route('/<reservation_id>', methods=['PATCH'])
@token_required
def update_reservation(current_user, reservation_id):
    data = json_body()
    status = data.get('status')

    if status == 'approved':
        reservation = ReservationService.approve(reservation_id, current_user)
    elif status == 'declined':
        reservation = ReservationService.decline(reservation_id, current_user)
    elif status == 'cancelled':
        reservation = ReservationService.cancel(reservation_id, current_user)
    elif status is None and 'date' in data:
        on_date, start, end = interval(data)
        reservation = ReservationService.reschedule(reservation_id, current_user, on_date, start, end)
    else:
        raise ValidationError("Provide a status (approved, declined, cancelled) or a new date and time.",
                              'invalid_update')

    return jsonify(reservation.to_dict()), 200

@reservations_bp.route('/<reservation_id>/no-show', methods=['POST'])
@token_required
@privileged_required
def mark_no_show(current_user, reservation_id):
    reservation = ReservationService.mark_no_show(reservation_id, current_user)
    return jsonify(reservation.to_dict()), 200
