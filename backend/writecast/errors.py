"""Error kinds raised by the puzzle services.

Routes let these propagate; the handler registered in ``create_app`` turns
them into ``{'error': ..., 'code': ...}`` JSON responses.
"""


class WritecastError(Exception):
    status_code = 400

    def __init__(self, message=None, **payload):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.payload = payload

    default_message = 'Request failed'

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self):
        data = {'error': self.message, 'code': self.kind}
        data.update(self.payload)
        return data


class PuzzleNotFound(WritecastError):
    status_code = 404
    default_message = 'Game not found'


class PuzzleExpired(PuzzleNotFound):
    default_message = 'This game has ended'


class IsAuthor(WritecastError):
    status_code = 403
    default_message = 'You created this game'


class AlreadyCompleted(WritecastError):
    status_code = 409
    default_message = 'You already completed this game'

    def __init__(self, session, message=None):
        super().__init__(message, session=session.to_dict())
        self.session = session


class OutOfAttempts(WritecastError):
    status_code = 409
    default_message = 'Out of attempts'


class AlreadyInvited(WritecastError):
    status_code = 409
    default_message = 'You have already invited someone for this game'


class InviteNotFound(WritecastError):
    status_code = 404
    default_message = 'Invite not found'


class PlayerNotFound(WritecastError):
    status_code = 404
    default_message = 'Player not found'


class InvalidGuess(WritecastError):
    default_message = 'Guess is required'


class InvalidHandle(WritecastError):
    default_message = 'A valid friend handle is required, e.g. @friend'


class InvalidPuzzle(WritecastError):
    default_message = 'Invalid game'


class PersistenceFailure(WritecastError):
    status_code = 503
    default_message = 'Storage is unavailable, please try again'


class GuessConflict(PersistenceFailure):
    default_message = 'Another guess for this game is in flight, please try again'


class InvalidContact(WritecastError):
    default_message = 'Please provide either an email or Farcaster username'


class AlreadyOnWaitlist(WritecastError):
    status_code = 409
    default_message = "You're already on the waitlist!"
