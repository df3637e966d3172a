from flask import Blueprint, jsonify, request

from writecast.services import waitlist as waitlist_service

waitlist = Blueprint('waitlist', __name__)


@waitlist.route('', methods=['POST'])
def join():
    data = request.get_json(silent=True) or {}
    if data.get('contact') is not None:
        email, username = waitlist_service.parse_contact(data.get('contact'))
    else:
        email, username = data.get('email'), data.get('farcaster_username')
    entry = waitlist_service.join_waitlist(email=email, farcaster_username=username)
    return jsonify({
        'entry': entry.to_dict(),
        'count': waitlist_service.waitlist_count(),
        'message': "You're on the list! We'll let you know when Writecast launches.",
    }), 201


@waitlist.route('/count', methods=['GET'])
def count():
    return jsonify({'count': waitlist_service.waitlist_count()})
