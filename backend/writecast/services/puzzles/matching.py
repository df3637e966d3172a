"""Word comparison and masking.

Pure functions with no database or request dependencies. Python's ``re``
treats word boundaries as Unicode-aware for str patterns, so accented and
non-Latin hidden words get the same boundary semantics as ASCII ones.
"""
import re
import unicodedata

from writecast.models import FILL_BLANK

MASK_PLACEHOLDER = '___'

_WHITESPACE = re.compile(r'\s+')


def normalize_guess(text: str) -> str:
    """NFC-normalise, trim, and collapse runs of whitespace."""
    if text is None:
        return ''
    text = unicodedata.normalize('NFC', text)
    return _WHITESPACE.sub(' ', text).strip()


def is_correct_guess(guess: str, hidden_word: str) -> bool:
    """Case-insensitive whole-word comparison.

    The guess must be the entire hidden word: ``cat`` matches ``Cat`` but not
    ``cats``, and a single word never matches part of a multi-word answer.
    """
    guess = normalize_guess(guess)
    answer = normalize_guess(hidden_word)
    if not guess or not answer:
        return False
    return guess.casefold() == answer.casefold()


def _word_pattern(word: str) -> re.Pattern:
    return re.compile(r'(?<!\w)' + re.escape(word) + r'(?!\w)')


def contains_word(text: str, word: str) -> bool:
    """Case-sensitive whole-word search, used when validating a new puzzle."""
    if not text or not word:
        return False
    return _word_pattern(word).search(text) is not None


def mask_text(text: str, word: str, placeholder: str = MASK_PLACEHOLDER) -> str:
    if not word:
        return text
    return _word_pattern(word).sub(placeholder, text)


def player_view(puzzle) -> str:
    """Text as a player sees it: masked for fill-blank, untouched for frame-word."""
    if puzzle.mode == FILL_BLANK:
        return mask_text(puzzle.body_text, puzzle.hidden_word)
    return puzzle.body_text
