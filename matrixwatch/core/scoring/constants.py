"""
Central earnings scoring constants.

All scoring thresholds and point values are defined here as the single
source of truth. Import from this module instead of hardcoding values.
"""

# --- Surprise classification (percent vs estimate) ---
EPS_BEAT_PCT = 2.0       # > +2%: Beat, < -2%: Miss
REVENUE_UP_PCT = 1.0     # > +1%: Up, < -1%: Down

# --- Score (1-10 scale) ---
SCORE_NEUTRAL = 5
SCORE_MIN = 1
SCORE_MAX = 10

EPS_POINTS = 2
REVENUE_POINTS = 2
GUIDANCE_POINTS = 1
REACTION_POINTS = 1
REACTION_THRESHOLD_PCT = 5.0  # |reaction| > 5% moves the score

# --- Category buckets ---
CATEGORY_GOOD_MIN = 7   # >= 7: Good
CATEGORY_OKAY_MIN = 4   # >= 4: Okay (below 4: Bad)

# --- Market reaction expectations per category ---
# min: below this a Good report is Abnormal; explosive: beyond this the move is Explosive
REACTION_RANGES = {
    "Good": {"min": 0.0, "explosive": 10.0},
    "Okay": {"explosive": 2.0},
    "Bad": {"min": -10.0, "explosive": 0.0},
}
