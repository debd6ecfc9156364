from flask import Blueprint, jsonify
from roomkeeper.services.checkin_service import CheckInService
from roomkeeper.utils.decorators import token_optional
from roomkeeper.utils.validators import json_body, require, optional_bool

checkin_bp = Blueprint('checkin', __name__)

@checkin_bp.route('/', methods=['POST'])
@token_optional
def check_in(current_user):
    data = json_body()
    require(data, 'reservation_id')

    reservation, changed = CheckInService.check_in(
        data['reservation_id'],
        actor=current_user,
        override=optional_bool(data, 'override')
    )
    return jsonify({
        'success': True,
        'already_checked_in': not changed,
        'message': 'Successfully checked in' if changed else 'Already checked in',
        'reservation': reservation.to_dict()
    }), 200

@checkin_bp.route('/<reservation_id>', methods=['GET'])
def check_in_status(reservation_id):
    return jsonify(CheckInService.status(reservation_id)), 200
