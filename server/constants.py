"""
Card and deck constants for UNO.

This module is the single source of truth for card point values and the
canonical deck composition. Game code and the AI read scores from here.

Standard UNO Scoring:
    - Number cards: face value (0-9)
    - Skip, Reverse, Draw Two: 20 points
    - Wild, Wild Draw Four: 50 points
"""

# =============================================================================
# Card Scores
# =============================================================================

ACTION_CARD_SCORE: int = 20
WILD_CARD_SCORE: int = 50

# =============================================================================
# Deck Composition
# =============================================================================

# One zero and two of each 1-9 per color
NUMBER_COPIES: dict[int, int] = {0: 1, **{n: 2 for n in range(1, 10)}}

# Skip, Reverse and Draw Two: two of each per color
ACTION_COPIES: int = 2

# Wild and Wild Draw Four: four of each
WILD_COPIES: int = 4

# 4 * (1 + 18) numbers + 4 * 6 actions + 8 wilds
DECK_SIZE: int = 108

INITIAL_HAND_SIZE: int = 7

# =============================================================================
# Table Limits
# =============================================================================

MIN_PLAYERS: int = 2
MAX_PLAYERS: int = 4

DEFAULT_UNO_PENALTY: int = 2
