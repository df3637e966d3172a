"""Demo data for local development (used by ``flask db-reset``)."""
from flask import current_app

from writecast import db
from writecast.models import FILL_BLANK, FRAME_WORD, Puzzle, User
from writecast.services.puzzles.authoring import validate_puzzle

DEMO_AUTHORS = [
    ('1001', 'wordsmith', 'Wordsmith'),
    ('1002', 'framer', 'Framer'),
]

DEMO_PUZZLES = {
    'ABC123': ('wordsmith', FILL_BLANK, 'innovation',
               'The future of technology lies in innovation and creativity. We must embrace change and push '
               'boundaries to create something truly remarkable. Innovation drives progress and transforms industries.'),
    'XYZ789': ('wordsmith', FILL_BLANK, 'serendipity',
               'Life is full of unexpected moments. Sometimes the best discoveries come from serendipity, those '
               'happy accidents that lead us to places we never imagined. Embrace the unknown.'),
    'TECH42': ('wordsmith', FILL_BLANK, 'blockchain',
               'Decentralized systems powered by blockchain technology are revolutionizing how we think about trust '
               'and transparency. The blockchain enables peer-to-peer transactions without intermediaries.'),
    'POET88': ('wordsmith', FILL_BLANK, 'ephemeral',
               'Beauty is often ephemeral, fleeting like cherry blossoms in spring. We chase these ephemeral moments, '
               'knowing they cannot last, yet finding meaning in their transience.'),
    'FRAME1': ('framer', FRAME_WORD, 'resilience',
               'When storms come and winds blow fierce, we bend but never break. Through every challenge and setback, '
               'we find strength within ourselves.'),
    'FRAME2': ('framer', FRAME_WORD, 'courage',
               'Fear whispers in our ears, but we step forward anyway. In the face of uncertainty, we choose action '
               'over paralysis.'),
    'FRAME3': ('framer', FRAME_WORD, 'solitude',
               "In the quiet spaces between noise, we find ourselves. Away from the crowd's demands and expectations, "
               'we can finally hear our own voice.'),
}


def seed_demo_data():
    """Create the demo authors and their puzzles. Returns the seeded codes."""
    authors = {}
    for fid, username, display_name in DEMO_AUTHORS:
        user = User(farcaster_id=fid, username=username, display_name=display_name)
        db.session.add(user)
        authors[username] = user
    db.session.flush()

    lifetime = int(current_app.config.get('PUZZLE_LIFETIME_HOURS', 24))
    for code, (username, mode, word, text) in DEMO_PUZZLES.items():
        text, word = validate_puzzle(mode, text, word)
        db.session.add(Puzzle(
            code=code,
            mode=mode,
            body_text=text,
            hidden_word=word,
            author_id=authors[username].id,
            lifetime_hours=lifetime,
        ))
    db.session.commit()
    return list(DEMO_PUZZLES)
