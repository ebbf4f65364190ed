from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from datetime import datetime

from inkmatch.domain.models.artist import GeoPoint, PortfolioItem, VisualDescriptor

class BudgetRange(BaseModel):
    min: float = Field(ge=0)
    max: float = Field(ge=0)
    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _ordered(self):
        if self.min > self.max:
            raise ValueError("budget min must not exceed max")
        return self

    @property
    def midpoint(self) -> float:
        return (self.min + self.max) / 2

    @property
    def width(self) -> float:
        return self.max - self.min

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max

class CustomerQuery(BaseModel):
    descriptor: VisualDescriptor
    location: GeoPoint
    max_radius_km: float = Field(gt=0)
    budget: BudgetRange
    customer_id: Optional[str] = None   # audit trail only
    limit: Optional[int] = Field(default=None, ge=1, le=100)
    model_config = {"frozen": True}

class ScoreBreakdown(BaseModel):
    design: float = Field(ge=0, le=1)
    artist: float = Field(ge=0, le=1)
    price: float = Field(ge=0, le=1)
    distance: float = Field(ge=0, le=1)
    model_config = {"frozen": True}

class MatchResult(BaseModel):
    artist_id: str
    display_name: Optional[str] = None
    score: float = Field(ge=0, le=1)
    breakdown: ScoreBreakdown
    distance_km: Optional[float] = None
    bearing_deg: Optional[float] = None
    distance_text: Optional[str] = None    # "850m", "3.2km"
    direction: Optional[str] = None        # compass point from the customer, e.g. "NE"
    estimated_price: float = 0
    compatibility: float = 0          # best portfolio item match score
    top_portfolio: List[PortfolioItem] = []
    reasons: List[str] = []
    model_config = {"frozen": True}

class MatchResultSet(BaseModel):
    items: List[MatchResult]
    count: int
    candidates: int = 0
    model_config = {"frozen": True}

class MatchHistoryEntry(BaseModel):
    customer_id: str
    style: str
    complexity: str
    is_colorful: bool
    motifs: List[str] = []
    max_radius_km: float
    budget: BudgetRange
    match_count: int
    top_matches: List[dict] = []
    created_at: datetime
    model_config = {"frozen": True}
