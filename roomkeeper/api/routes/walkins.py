from flask import Blueprint, request, jsonify
from roomkeeper.services.walkin_service import WalkInService
from roomkeeper.utils import clock
from roomkeeper.utils.decorators import token_optional
from roomkeeper.utils.timeutil import minute_of_day, to_hhmm
from roomkeeper.utils.validators import json_body, require, optional_int

walkins_bp = Blueprint('walkins', __name__)

@walkins_bp.route('/available', methods=['GET'])
def available_now():
    now = clock.now()
    rooms = WalkInService.available_now(optional_int(request.args, 'location_id'), now=now)
    return jsonify({
        'rooms': rooms,
        'current_time': to_hhmm(minute_of_day(now)),
        'timestamp': now.isoformat()
    })

@walkins_bp.route('/', methods=['POST'])
@token_optional
def create_walk_in(current_user):
    data = json_body()
    require(data, 'room_id', 'location_id', 'program_type_id', 'duration', 'requester_name', 'requester_email')

    reservation = WalkInService.create_walk_in(
        room_id=optional_int(data, 'room_id'),
        location_id=optional_int(data, 'location_id'),
        program_type_id=optional_int(data, 'program_type_id'),
        duration=optional_int(data, 'duration'),
        requester={
            'name': data['requester_name'],
            'email': data['requester_email'],
            'phone': data.get('requester_phone')
        },
        original_reservation_id=data.get('original_reservation_id'),
        actor=current_user
    )
    return jsonify({'success': True, 'reservation': reservation.to_dict()}), 201
