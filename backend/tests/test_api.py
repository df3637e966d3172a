from datetime import timedelta

from conftest import farcaster_headers

from writecast import db
from writecast.models import Invite, Puzzle, User


AUTHOR = farcaster_headers(100, 'poet')
ALICE = farcaster_headers(101, 'alice')
BOB = farcaster_headers(102, 'bob')

TEXT = 'The future of technology lies in innovation and creativity. Innovation drives progress.'


def _publish(client, hidden_word='innovation', text=TEXT, mode='fill-blank', headers=AUTHOR):
    res = client.post('/api/puzzles', json={'mode': mode, 'text': text, 'hidden_word': hidden_word}, headers=headers)
    assert res.status_code == 201, res.get_json()
    return res.get_json()['code']


def test_index(client):
    res = client.get('/')
    assert res.status_code == 200
    assert 'Writecast' in res.get_json()['message']


def test_create_and_fetch_masked_puzzle(client):
    code = _publish(client)
    assert len(code) == 6

    res = client.get(f'/api/puzzles/{code.lower()}', headers=ALICE)
    assert res.status_code == 200
    data = res.get_json()
    assert data['code'] == code
    assert data['text'] == 'The future of technology lies in ___ and creativity. Innovation drives progress.'
    assert 'hidden_word' not in data
    assert data['max_attempts'] == 3


def test_frame_word_puzzle_shows_full_text(client):
    text = 'We bend but never break.'
    code = _publish(client, hidden_word='resilience', text=text, mode='frame-word')
    data = client.get(f'/api/puzzles/{code}').get_json()
    assert data['text'] == text


def test_create_validation(client):
    res = client.post('/api/puzzles', json={'mode': 'fill-blank', 'text': 'no hidden word here', 'hidden_word': 'innovation'}, headers=AUTHOR)
    assert res.status_code == 400
    assert res.get_json()['code'] == 'InvalidPuzzle'

    # case-sensitive presence check
    res = client.post('/api/puzzles', json={'mode': 'fill-blank', 'text': 'INNOVATION rocks', 'hidden_word': 'innovation'}, headers=AUTHOR)
    assert res.status_code == 400

    res = client.post('/api/puzzles', json={'mode': 'haiku', 'text': TEXT, 'hidden_word': 'innovation'}, headers=AUTHOR)
    assert res.status_code == 400


def test_guests_cannot_create_or_invite(client):
    res = client.post('/api/puzzles', json={'mode': 'fill-blank', 'text': TEXT, 'hidden_word': 'innovation'})
    assert res.status_code == 401
    code = _publish(client)
    res = client.post(f'/api/puzzles/{code}/invite', json={'handle': '@friend'})
    assert res.status_code == 401


def test_guest_can_play_with_stable_identity(client):
    code = _publish(client)
    guest = {'X-Anonymous-Id': 'device-42'}
    r1 = client.post(f'/api/puzzles/{code}/guess', json={'guess': 'wrong'}, headers=guest).get_json()
    r2 = client.post(f'/api/puzzles/{code}/guess', json={'guess': 'wrong again'}, headers=guest).get_json()
    assert (r1['attempt_number'], r2['attempt_number']) == (1, 2)
    assert r2['can_invite'] is True

    me = client.get('/api/me', headers=guest).get_json()
    assert me['is_anonymous'] is True
    assert me['farcaster_id'] is None


def test_guess_flow_win(client):
    code = _publish(client)
    res = client.post(f'/api/puzzles/{code}/guess', json={'guess': 'Innovation'}, headers=ALICE)
    assert res.status_code == 200
    data = res.get_json()
    assert data['is_correct'] is True
    assert data['attempt_number'] == 1
    assert data['session_status'] == 'won'
    assert data['points_earned'] == 20
    assert data['answer'] == 'innovation'

    res = client.post(f'/api/puzzles/{code}/guess', json={'guess': 'innovation'}, headers=ALICE)
    assert res.status_code == 409
    body = res.get_json()
    assert body['code'] == 'AlreadyCompleted'
    assert body['session']['status'] == 'won'
    assert body['session']['points_earned'] == 20


def test_guess_flow_loss_and_session_view(client):
    code = _publish(client)
    statuses = []
    for guess in ('wrong1', 'wrong2', 'wrong3'):
        data = client.post(f'/api/puzzles/{code}/guess', json={'guess': guess}, headers=ALICE).get_json()
        statuses.append((data['session_status'], data['can_invite']))
    assert statuses == [('in_progress', False), ('in_progress', True), ('lost', False)]
    assert data['answer'] == 'innovation'
    assert data['points_earned'] == 0

    view = client.get(f'/api/puzzles/{code}/session', headers=ALICE).get_json()
    assert view['session']['status'] == 'lost'
    assert [a['attempt_number'] for a in view['attempts']] == [1, 2, 3]
    assert view['attempts_remaining'] == 0


def test_session_view_before_playing(client):
    code = _publish(client)
    view = client.get(f'/api/puzzles/{code}/session', headers=BOB).get_json()
    assert view['session'] is None
    assert view['attempts'] == []
    assert view['max_attempts'] == 3


def test_author_cannot_guess(client):
    code = _publish(client)
    res = client.post(f'/api/puzzles/{code}/guess', json={'guess': 'innovation'}, headers=AUTHOR)
    assert res.status_code == 403
    assert res.get_json()['code'] == 'IsAuthor'


def test_unknown_code(client):
    res = client.post('/api/puzzles/NOPE00/guess', json={'guess': 'x'}, headers=ALICE)
    assert res.status_code == 404
    assert res.get_json()['code'] == 'PuzzleNotFound'


def test_empty_guess(client):
    code = _publish(client)
    res = client.post(f'/api/puzzles/{code}/guess', json={'guess': '  '}, headers=ALICE)
    assert res.status_code == 400
    assert res.get_json()['code'] == 'InvalidGuess'


def test_invite_flow_grants_fourth_attempt(client):
    code = _publish(client)
    for guess in ('wrong1', 'wrong2'):
        client.post(f'/api/puzzles/{code}/guess', json={'guess': guess}, headers=ALICE)

    res = client.post(f'/api/puzzles/{code}/invite', json={'handle': '@bob'}, headers=ALICE)
    assert res.status_code == 201
    data = res.get_json()
    assert data['session']['max_attempts'] == 4
    assert data['invite']['invited_handle'] == 'bob'
    assert 'invitee=bob' in data['invite_url']
    assert '4 total attempts' in data['message']

    res = client.post(f'/api/puzzles/{code}/invite', json={'handle': '@carol'}, headers=ALICE)
    assert res.status_code == 409
    assert res.get_json()['code'] == 'AlreadyInvited'

    r3 = client.post(f'/api/puzzles/{code}/guess', json={'guess': 'wrong3'}, headers=ALICE).get_json()
    assert r3['session_status'] == 'in_progress'
    r4 = client.post(f'/api/puzzles/{code}/guess', json={'guess': 'wrong4'}, headers=ALICE).get_json()
    assert r4['session_status'] == 'lost'


def test_invited_friend_win_credits_inviter(client):
    code = _publish(client)
    invite = client.post(f'/api/puzzles/{code}/invite', json={'handle': '@bob'}, headers=ALICE).get_json()['invite']

    res = client.post(f"/api/invites/{invite['id']}/accept", headers=BOB)
    assert res.status_code == 200
    assert res.get_json()['status'] == 'accepted'

    client.post(f'/api/puzzles/{code}/guess', json={'guess': 'innovation'}, headers=BOB)
    # alice finishes (loses) so she shows up on the player board
    for guess in ('a', 'b', 'c', 'd'):
        client.post(f'/api/puzzles/{code}/guess', json={'guess': guess}, headers=ALICE)

    board = client.get('/api/leaderboard').get_json()
    points = {e['username']: e['total_points_earned'] for e in board['players']}
    assert points == {'bob': 20, 'alice': 2}


def test_accept_invite_for_someone_else(client):
    code = _publish(client)
    invite = client.post(f'/api/puzzles/{code}/invite', json={'handle': '@bob'}, headers=ALICE).get_json()['invite']
    res = client.post(f"/api/invites/{invite['id']}/accept", headers=farcaster_headers(103, 'mallory'))
    assert res.status_code == 404


def test_reveal_hides_answer_until_expiry(client, flask_app):
    code = _publish(client)
    for guess in ('a', 'b', 'c'):
        client.post(f'/api/puzzles/{code}/guess', json={'guess': guess}, headers=ALICE)
    client.post(f'/api/puzzles/{code}/guess', json={'guess': 'innovation'}, headers=BOB)

    data = client.get(f'/api/puzzles/{code}/reveal', headers=AUTHOR).get_json()
    assert data['status'] == 'active'
    assert 'hidden_word' not in data
    assert data['is_author'] is True
    assert data['failed_guesses'] == 1
    assert data['successful_guesses'] == 1
    assert data['total_players'] == 2
    assert data['total_attempts'] == 4
    assert data['author_earnings'] == 5
    assert data['success_rate'] == 50.0

    with flask_app.app_context():
        puzzle = Puzzle.query.filter_by(code=code).first()
        puzzle.expires_at = puzzle.created_at - timedelta(seconds=1)
        db.session.commit()

    data = client.get(f'/api/puzzles/{code}/reveal', headers=ALICE).get_json()
    assert data['status'] == 'completed'
    assert data['hidden_word'] == 'innovation'
    assert data['your_session']['status'] == 'lost'

    # expired puzzles no longer accept guesses
    res = client.post(f'/api/puzzles/{code}/guess', json={'guess': 'innovation'}, headers=BOB)
    assert res.status_code == 404
    assert res.get_json()['code'] == 'PuzzleExpired'


def test_available_puzzles_exclude_own_and_finished(client):
    mine = _publish(client, headers=ALICE)
    other = _publish(client)
    finished = _publish(client)
    client.post(f'/api/puzzles/{finished}/guess', json={'guess': 'innovation'}, headers=ALICE)

    listing = client.get('/api/puzzles', headers=ALICE).get_json()
    codes = [p['code'] for p in listing['puzzles']]
    assert codes == [other]
    assert mine not in codes


def test_share_and_profile(client):
    code = _publish(client)
    data = client.get(f'/api/puzzles/{code}/share').get_json()
    assert data['share_url'] == f'https://writecast.test/play/{code}'
    assert 'innovation' not in data['text']

    client.post(f'/api/puzzles/{code}/guess', json={'guess': 'innovation'}, headers=ALICE)
    profile = client.get('/api/players/@alice').get_json()
    assert profile['total_points_earned'] == 20
    assert profile['total_games_won'] == 1

    author = client.get('/api/players/poet').get_json()
    assert author['total_games_created'] == 1

    assert client.get('/api/players/nobody').status_code == 404


def test_fid_only_request_keeps_stored_profile(client):
    headers = farcaster_headers(555, 'carol')
    headers['X-Farcaster-Display-Name'] = 'Carol'
    assert client.get('/api/me', headers=headers).get_json()['username'] == 'carol'

    me = client.get('/api/me', headers=farcaster_headers(555)).get_json()
    assert me['username'] == 'carol'
    assert me['display_name'] == 'Carol'
    assert client.get('/api/players/carol').status_code == 200

    fresh = client.get('/api/me', headers=farcaster_headers(556)).get_json()
    assert fresh['username'] == 'user_556'
    assert fresh['display_name'] == 'User 556'


def test_invite_credit_survives_fid_only_requests(client, flask_app):
    code = _publish(client)
    client.get('/api/me', headers=BOB)
    client.post(f'/api/puzzles/{code}/invite', json={'handle': '@bob'}, headers=ALICE)
    res = client.post(f'/api/puzzles/{code}/guess', json={'guess': 'innovation'}, headers=farcaster_headers(102))
    assert res.get_json()['session_status'] == 'won'

    with flask_app.app_context():
        invite = Invite.query.one()
        assert invite.status == 'completed'
        assert invite.inviter_earned_points == 2


def test_reveal_does_not_register_visitors(client, flask_app):
    code = _publish(client)
    with flask_app.app_context():
        before = User.query.count()

    for _ in range(3):
        data = flask_app.test_client().get(f'/api/puzzles/{code}/reveal').get_json()
        assert data['is_author'] is False
        assert data['your_session'] is None
    data = client.get(f'/api/puzzles/{code}/reveal', headers={'X-Anonymous-Id': 'never-seen'}).get_json()
    assert data['your_session'] is None

    with flask_app.app_context():
        assert User.query.count() == before


def test_oversized_anonymous_token_falls_back_to_cookie(client, flask_app):
    code = _publish(client)
    bad = {'X-Anonymous-Id': 'x' * 200}
    r1 = client.post(f'/api/puzzles/{code}/guess', json={'guess': 'wrong'}, headers=bad)
    assert r1.status_code == 200
    r2 = client.post(f'/api/puzzles/{code}/guess', json={'guess': 'wrong again'}, headers=bad)
    assert r2.get_json()['attempt_number'] == 2

    with flask_app.app_context():
        assert User.query.filter(User.farcaster_id.like('anon_xxx%')).count() == 0
        assert User.query.filter(User.farcaster_id.like('anon_%')).count() == 1
