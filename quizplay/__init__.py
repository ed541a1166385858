"""Interactive assessment session engine.

Quizzes and mini-games (word ordering, column matching, word wheel, image
hotspots) share one Session state machine. Scoring, lives, countdown and
integrity signals live in the core modules; ``app`` is a pygame host view.
"""

__version__ = "0.1.0"
