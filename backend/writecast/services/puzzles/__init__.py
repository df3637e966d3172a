"""Puzzle domain services: authoring, guess sessions, scoring and invites.

This package contains the game rules that HTTP routes and socket handlers
import, keeping transport concerns separated from core game mechanics.
"""
