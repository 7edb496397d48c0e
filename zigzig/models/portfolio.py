from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

ExperienceLevel = Literal["entry", "mid", "senior", "lead"]
RemotePreference = Literal["remote", "hybrid", "onsite", "flexible"]
CompetitiveLevel = Literal["low", "medium", "high"]
ProjectComplexity = Literal["beginner", "intermediate", "advanced", "expert"]


class SalaryRange(BaseModel):
    min: float = 0
    max: float = 0

    @classmethod
    def from_untrusted(cls, data: Any) -> Optional["SalaryRange"]:
        """Accepts {min, max} dicts or [min, max] pairs; anything else is None."""
        if isinstance(data, dict):
            low, high = data.get("min"), data.get("max")
        elif isinstance(data, (list, tuple)) and len(data) == 2:
            low, high = data
        else:
            return None
        try:
            low = float(low) if low not in (None, "") else None
            high = float(high) if high not in (None, "") else None
        except (TypeError, ValueError):
            return None
        if low is None and high is None:
            return None
        low = low if low is not None else high
        high = high if high is not None else low
        if low > high:
            low, high = high, low
        return cls(min=max(0.0, low), max=max(0.0, high))


class Contact(BaseModel):
    email: Optional[str] = None
    phone: Optional[str] = None
    github: Optional[str] = None
    linkedin: Optional[str] = None
    website: Optional[str] = None
    twitter: Optional[str] = None


class Skills(BaseModel):
    all: List[str] = Field(default_factory=list)
    technical: List[str] = Field(default_factory=list)
    frameworks: List[str] = Field(default_factory=list)
    languages: List[str] = Field(default_factory=list)
    databases: List[str] = Field(default_factory=list)
    cloud: List[str] = Field(default_factory=list)
    tools: List[str] = Field(default_factory=list)
    soft: List[str] = Field(default_factory=list)


class Role(BaseModel):
    company: str = ""
    title: str = ""
    duration: str = ""
    location: str = ""
    description: str = ""
    technologies: List[str] = Field(default_factory=list)
    years: float = 0.0
    is_current: bool = False
    achievements: List[str] = Field(default_factory=list)
    company_type: str = "mid-size"


class Experience(BaseModel):
    total_years: float = Field(default=0.0, ge=0)
    level: ExperienceLevel = "entry"
    industries: List[str] = Field(default_factory=list)
    roles: List[Role] = Field(default_factory=list)
    remote_experience: bool = False
    company_types: List[str] = Field(default_factory=list)


class Degree(BaseModel):
    degree: str = ""
    school: str = ""
    year: str = ""
    field: str = ""


class Education(BaseModel):
    degrees: List[Degree] = Field(default_factory=list)
    certifications: List[str] = Field(default_factory=list)
    continuous_learning: bool = False


class Projects(BaseModel):
    count: int = 0
    technologies: List[str] = Field(default_factory=list)
    types: List[str] = Field(default_factory=list)
    has_open_source: bool = False
    domains: List[str] = Field(default_factory=list)
    complexity: ProjectComplexity = "beginner"


class Preferences(BaseModel):
    preferred_roles: List[str] = Field(default_factory=list)
    preferred_industries: List[str] = Field(default_factory=list)
    remote_preference: RemotePreference = "flexible"
    preferred_company_size: List[str] = Field(default_factory=list)
    salary_range: Optional[SalaryRange] = None
    willing_to_relocate: bool = False
    needs_visa_sponsorship: bool = False


class MarketProfile(BaseModel):
    competitive_level: CompetitiveLevel = "low"
    rarity_score: float = Field(default=0.0, ge=0.0, le=1.0)
    market_demand_score: float = Field(default=0.0, ge=0.0, le=1.0)
    versatility_score: float = Field(default=0.0, ge=0.0, le=1.0)
    unique_skill_combinations: List[List[str]] = Field(default_factory=list)


class ParsedPortfolioData(BaseModel):
    """Structured candidate profile derived from raw portfolio content"""
    model_config = {"frozen": True}

    name: str = ""
    title: str = ""
    about: str = ""
    location: str = ""
    contact: Contact = Field(default_factory=Contact)
    skills: Skills = Field(default_factory=Skills)
    experience: Experience = Field(default_factory=Experience)
    education: Education = Field(default_factory=Education)
    projects: Projects = Field(default_factory=Projects)
    preferences: Preferences = Field(default_factory=Preferences)
    market_profile: MarketProfile = Field(default_factory=MarketProfile)


class CachedPortfolio(BaseModel):
    user_id: str
    portfolio_id: str
    parsed_data: Dict[str, Any]
    is_active: bool = True
    last_updated: datetime = Field(default_factory=datetime.utcnow)


class ParsePortfolioRequest(BaseModel):
    content: Dict[str, Any] = Field(default_factory=dict)
