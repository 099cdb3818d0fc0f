"""
MatchTrack — Tennis Match Scoring & Tracking Engine
===================================================
Turns a stream of point outcomes into games, sets and a match result
under configurable formats, with undo/redo and save/resume.
"""

__version__ = "1.0.0"
__app_name__ = "MatchTrack"
