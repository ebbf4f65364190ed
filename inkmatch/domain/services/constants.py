# Constants for the matching pipeline.

# Combined-score weights (must sum to 1)
W_DESIGN = 0.4
W_ARTIST = 0.3
W_PRICE = 0.2
W_DISTANCE = 0.1

TOP_PORTFOLIO_K = 3   # portfolio items returned per match
MAX_REASONS = 3       # reason strings returned per match
HISTORY_TOP_K = 10    # matches kept in the audit entry

# Style specialization bonus
PROFICIENCY_STEP = 0.05      # per level above 1 (levels 1-5 -> 0..0.2)
SPECIALTY_YEAR_STEP = 0.01
SPECIALTY_YEAR_CAP = 0.1

# Artist reputation
RATING_WEIGHT = 0.5
REVIEW_STEP, REVIEW_CAP = 0.01, 0.2
EXPERIENCE_STEP, EXPERIENCE_CAP = 0.02, 0.2
PORTFOLIO_STEP, PORTFOLIO_CAP = 0.01, 0.1
VERIFIED_BONUS = 0.1

# Price fit
NEUTRAL_PRICE_SCORE = 0.5
IN_BUDGET_PENALTY = 0.3

# Fallback prices by complexity when neither tier nor hourly rate is known
DEFAULT_PRICE_SIMPLE = 15000
DEFAULT_PRICE_MODERATE = 30000
DEFAULT_PRICE_COMPLEX = 60000
