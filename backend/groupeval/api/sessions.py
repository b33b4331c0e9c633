from flask import Blueprint, jsonify, request
from groupeval.services.sessions import controller


sessions = Blueprint('sessions', __name__)


@sessions.route('/sessions', methods=['POST'])
def create_session():
    data = request.get_json(silent=True) or {}
    session = controller.create_session(
        name=data.get('name'),
        admin_secret=data.get('admin_secret'),
        participant_count=data.get('participant_count'),
        threshold=data.get('threshold'),
    )
    return jsonify(session.to_dict()), 201


@sessions.route('/admin/session', methods=['POST'])
def admin_session():
    data = request.get_json(silent=True) or {}
    session = controller.admin_overview(data.get('admin_secret'))
    return jsonify(session.to_dict())


@sessions.route('/admin/penalties', methods=['PUT'])
def update_penalties():
    data = request.get_json(silent=True) or {}
    session = controller.set_penalties(data.get('admin_secret'), data.get('penalties', {}))
    return jsonify(session.to_dict())


@sessions.route('/join', methods=['POST'])
def join_session():
    data = request.get_json(silent=True) or {}
    participant, session = controller.join_session(data.get('join_code'))
    return jsonify({
        'session_id': session.id,
        'session_name': session.name,
        'participant_id': participant.id,
        'hash_code': participant.hash_code,
    })


@sessions.route('/submit', methods=['POST'])
def submit_score():
    data = request.get_json(silent=True) or {}
    participant_id = data.get('participant_id')
    ratings = data.get('ratings')
    if participant_id is None or ratings is None:
        return jsonify({'error': 'Participant ID and ratings are required', 'kind': 'validation_error'}), 400
    participant = controller.submit_ratings(participant_id, ratings)
    return jsonify({
        'participant_id': participant.id,
        'score': participant.score,
        'submitted': participant.submitted,
    }), 201


@sessions.route('/participants/<int:participant_id>/status', methods=['GET'])
def participant_status(participant_id):
    return jsonify(controller.session_status(participant_id))
