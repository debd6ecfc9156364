from flask import Blueprint, jsonify
from roomkeeper.services.suggestion_service import SuggestionService
from roomkeeper.utils.validators import json_body, require, optional_int, optional_time, optional_date

suggestions_bp = Blueprint('suggestions', __name__)

def _preference(data):
    return {
        'preferred_date': optional_date(data, 'preferred_date'),
        'preferred_start': optional_time(data, 'preferred_start_time'),
        'preferred_day_of_week': optional_int(data, 'preferred_day_of_week'),
        'duration': optional_int(data, 'duration', default=60),
        'required_capacity': optional_int(data, 'required_capacity')
    }

@suggestions_bp.route('/times', methods=['POST'])
def suggest_times():
    data = json_body()
    require(data, 'room_id')
    suggestions = SuggestionService.suggest_times(optional_int(data, 'room_id'), _preference(data))
    return jsonify({'suggestions': suggestions, 'total_found': len(suggestions)})

@suggestions_bp.route('/rooms', methods=['POST'])
def suggest_rooms():
    data = json_body()
    require(data, 'location_id')
    suggestions = SuggestionService.suggest_rooms(optional_int(data, 'location_id'), _preference(data))
    return jsonify({'suggestions': suggestions, 'total_found': len(suggestions)})
