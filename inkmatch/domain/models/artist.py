from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from datetime import datetime

Complexity = Literal["simple", "moderate", "complex"]

class GeoPoint(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    model_config = {"frozen": True}

class VisualDescriptor(BaseModel):
    """Output of the external image-analysis collaborator (read-only here)."""
    style: str
    color_palette: List[str] = []
    is_colorful: bool = False
    motifs: List[str] = []
    complexity: Complexity = "moderate"
    confidence: float = Field(default=1.0, ge=0, le=1)
    raw_labels: List[str] = []
    model_config = {"frozen": True}

class PortfolioItem(BaseModel):
    item_id: str
    image_url: str
    title: Optional[str] = None
    analysis: Optional[VisualDescriptor] = None
    analyzed_at: Optional[datetime] = None
    model_config = {"frozen": True}

class PriceTable(BaseModel):
    small: Optional[float] = Field(default=None, ge=0)
    medium: Optional[float] = Field(default=None, ge=0)
    large: Optional[float] = Field(default=None, ge=0)
    model_config = {"frozen": True}

    def average(self) -> float:
        # missing tiers count as zero
        return ((self.small or 0) + (self.medium or 0) + (self.large or 0)) / 3

class Specialty(BaseModel):
    style: str
    proficiency_level: int = Field(default=1, ge=1, le=5)
    experience_years: float = Field(default=0, ge=0)
    is_active: bool = True
    model_config = {"frozen": True}

class ArtistProfile(BaseModel):
    artist_id: str
    display_name: str
    location: Optional[GeoPoint] = None
    hourly_rate: Optional[float] = Field(default=None, ge=0)
    price_table: Optional[PriceTable] = None
    specialties: List[Specialty] = []
    rating: float = Field(default=0, ge=0, le=5)
    review_count: int = Field(default=0, ge=0)
    experience_years: float = Field(default=0, ge=0)
    verified: bool = False
    is_active: bool = True
    portfolio: List[PortfolioItem] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"frozen": True}  # immuable = safe

    def specialty_for(self, style: str) -> Optional[Specialty]:
        for s in self.specialties:
            if s.is_active and s.style == style:
                return s
        return None
