"""
Portfolio parser: turns raw portfolio content into a structured candidate profile.

Everything here is pure and deterministic for a given input and ``today``.
Sparse or oddly typed content degrades to empty values instead of raising.
"""
import json
import re
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from zigzig.helpers import taxonomy
from zigzig.helpers.parsing import (
    clean_text, is_ongoing, parse_duration_years, parse_year, years_between,
)
from zigzig.models.portfolio import (
    Contact, Degree, Education, Experience, MarketProfile, ParsedPortfolioData,
    Preferences, Projects, Role, SalaryRange, Skills,
)
from zigzig.utils.logging_config import log_function_call

LEVEL_ORDER = ("entry", "mid", "senior", "lead")
LEVEL_WEIGHTS = {"entry": 0.25, "mid": 0.5, "senior": 0.75, "lead": 1.0}
SKILL_CATEGORIES = (
    ("languages", taxonomy.LANGUAGES),
    ("frameworks", taxonomy.FRAMEWORKS),
    ("databases", taxonomy.DATABASES),
    ("cloud", taxonomy.CLOUD),
    ("tools", taxonomy.TOOLS),
    ("soft", taxonomy.SOFT_SKILLS),
)
TECHNICAL_CATEGORIES = ("databases", "cloud", "tools")
MAX_TOTAL_YEARS = 50.0

_REMOTE_SIGNALS = (
    ("remote", re.compile(r"\bremote\b|\bwork from home\b|\bwfh\b", re.IGNORECASE)),
    ("hybrid", re.compile(r"\bhybrid\b", re.IGNORECASE)),
    ("onsite", re.compile(r"\bon[- ]?site\b|\bin[- ]office\b|\bin[- ]person\b", re.IGNORECASE)),
)
_RELOCATION_RE = re.compile(r"relocat|willing to move|open to moving", re.IGNORECASE)
_VISA_RE = re.compile(
    r"\b(?:require|requires|need|needs|seeking)\s+(?:a\s+)?(?:visa\s+)?sponsorship\b|\bvisa\s+sponsorship\s+required\b",
    re.IGNORECASE,
)
_ACHIEVEMENT_PATTERNS = (
    re.compile(r"\b(?:increas|reduc|improv|cut|grew|boost|decreas)\w*\b[^.;\n]*?\bby\s+(?:\d+(?:\.\d+)?%|\d+x)", re.IGNORECASE),
    re.compile(r"\b(?:led|managed|mentored)\b[^.;\n]*?\b(?:team|engineers|developers|project)s?\b", re.IGNORECASE),
    re.compile(r"\b(?:saved|generated)\b[^.;\n]*?\$\s?\d[\d,.]*[kmb]?\b", re.IGNORECASE),
)
MAX_ACHIEVEMENTS = 5
COMPLEXITY_LEVELS = ((20, "expert"), (15, "advanced"), (10, "intermediate"))
VERSATILITY_CATEGORIES = ("languages", "frameworks", "databases", "cloud", "tools")


def _as_text(x: Any) -> str:
    if x is None:
        return ""
    if isinstance(x, list):
        return " ".join([str(t).strip() for t in x if t is not None and str(t).strip()])
    if isinstance(x, dict):
        return ""
    return clean_text(str(x))


def _as_list(x: Any) -> List[str]:
    if x is None:
        return []
    if isinstance(x, str):
        parts = [p.strip() for p in x.replace(";", ",").split(",")]
        return [p for p in parts if p]
    if isinstance(x, (list, tuple, set)):
        out = []
        for item in x:
            if isinstance(item, dict):
                item = item.get("name") or item.get("skill") or item.get("title")
            text = _as_text(item)
            if text:
                out.append(text)
        return out
    return []


def _as_records(x: Any, *keys: str) -> List[Dict[str, Any]]:
    """A list of dict records from a list, or from a dict wrapping one."""
    if isinstance(x, dict):
        for key in keys + ("items", "entries", "list"):
            if isinstance(x.get(key), list):
                x = x[key]
                break
        else:
            return []
    if not isinstance(x, list):
        return []
    return [item for item in x if isinstance(item, dict)]


def _first(record: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = record.get(key)
        if value not in (None, "", [], {}):
            return value
    return None


def _contains_word(text: str, keyword: str) -> bool:
    return re.search(rf"(?<![a-z0-9]){re.escape(keyword)}(?![a-z0-9])", text) is not None


def _dedupe(values: Iterable[str]) -> List[str]:
    seen = set()
    out = []
    for value in values:
        key = normalize_skill(value)
        if key and key not in seen:
            seen.add(key)
            out.append(value)
    return out


def normalize_skill(skill: str) -> str:
    """Lowercased skill key. A leading dot is kept so ".NET" stays distinct from "NET"."""
    key = re.sub(r"\s+", " ", (skill or "").strip().lower()).strip(" ,;:")
    return re.sub(r"(?<=[a-z])\.$", "", key)


def _skill_keys(skill: str) -> List[str]:
    key = normalize_skill(skill)
    unversioned = re.sub(r"\s*v?\d+(\.\d+)*$", "", key)
    return [key, unversioned] if unversioned and unversioned != key else [key]


def extract_achievements(text: str) -> List[str]:
    """Quantified or leadership statements pulled out of a role description"""
    found = []
    for pattern in _ACHIEVEMENT_PATTERNS:
        found.extend(match.group(0).strip() for match in pattern.finditer(text or ""))
    return found


def company_type_for(text: str) -> str:
    lowered = (text or "").lower()
    for markers, kind in taxonomy.COMPANY_TYPE_MARKERS:
        if any(marker in lowered for marker in markers):
            return kind
    return "mid-size"


def complexity_for(technology_count: int, project_count: int) -> str:
    score = technology_count + project_count
    for threshold, label in COMPLEXITY_LEVELS:
        if score >= threshold:
            return label
    return "beginner"


def level_for_years(total_years: float) -> str:
    if total_years >= 8:
        return "lead"
    if total_years >= 5:
        return "senior"
    if total_years >= 2:
        return "mid"
    return "entry"


def level_from_title(title: str) -> Optional[str]:
    lowered = (title or "").lower()
    if any(_contains_word(lowered, marker) for marker in taxonomy.LEAD_MARKERS):
        return "lead"
    if any(_contains_word(lowered, marker) for marker in taxonomy.SENIOR_MARKERS):
        return "senior"
    return None


class PortfolioParser:
    """Parse portfolio content into ``ParsedPortfolioData`` for job matching"""

    @classmethod
    @log_function_call
    def parse_portfolio(cls, content: Any, today: Optional[date] = None) -> ParsedPortfolioData:
        today = today or date.today()
        content = cls._coerce_content(content)
        contact_raw = content.get("contact") if isinstance(content.get("contact"), dict) else {}
        personal = content.get("personal_info") if isinstance(content.get("personal_info"), dict) else {}

        skills = cls.parse_skills(content.get("skills"))
        experience = cls.parse_experience(content.get("experience"), today=today)
        education = cls.parse_education(content.get("education"), content.get("certifications"), today=today)
        projects = cls.parse_projects(content.get("projects"))
        preferences = cls.infer_preferences(content, experience, skills)
        market_profile = cls.analyze_market_profile(skills, experience, projects)

        return ParsedPortfolioData(
            name=_as_text(_first(content, "name", "full_name", "fullName")
                          or _first(personal, "name", "full_name")),
            title=_as_text(_first(content, "title", "headline", "role", "position")),
            about=_as_text(_first(content, "about", "summary", "bio")),
            location=_as_text(_first(content, "location") or contact_raw.get("location")),
            contact=cls.parse_contact(content),
            skills=skills,
            experience=experience,
            education=education,
            projects=projects,
            preferences=preferences,
            market_profile=market_profile,
        )

    @staticmethod
    def _coerce_content(content: Any) -> Dict[str, Any]:
        if isinstance(content, str):
            try:
                content = json.loads(content)
            except ValueError:
                return {}
        return content if isinstance(content, dict) else {}

    # ---------------- skills ----------------

    @classmethod
    def parse_skills(cls, raw: Any) -> Skills:
        if isinstance(raw, dict):
            flattened = []
            for value in raw.values():
                flattened.extend(_as_list(value))
            raw_skills = flattened
        else:
            raw_skills = _as_list(raw)

        all_skills = _dedupe(raw_skills)
        buckets: Dict[str, List[str]] = {name: [] for name, _ in SKILL_CATEGORIES}
        for skill in all_skills:
            category = cls.categorize_skill(skill)
            if category:
                buckets[category].append(skill)

        technical = [s for s in all_skills if cls.categorize_skill(s) in TECHNICAL_CATEGORIES]
        return Skills(all=all_skills, technical=technical, **buckets)

    @staticmethod
    def categorize_skill(skill: str) -> Optional[str]:
        for key in _skill_keys(skill):
            for name, table in SKILL_CATEGORIES:
                if key in table:
                    return name
        return None

    # ---------------- experience ----------------

    @classmethod
    def parse_experience(cls, raw: Any, today: Optional[date] = None) -> Experience:
        today = today or date.today()
        roles = [cls._parse_role(record, today) for record in _as_records(raw, "roles", "positions", "jobs")]

        total_years = round(min(sum(role.years for role in roles), MAX_TOTAL_YEARS), 1)
        level = level_for_years(total_years)
        for role in roles:
            marked = level_from_title(role.title)
            if marked and LEVEL_ORDER.index(marked) > LEVEL_ORDER.index(level):
                level = marked

        return Experience(
            total_years=total_years,
            level=level,
            industries=cls.extract_industries(roles),
            roles=roles,
            remote_experience=any(
                _REMOTE_SIGNALS[0][1].search(f"{role.location} {role.description}") for role in roles
            ),
            company_types=_dedupe(role.company_type for role in roles),
        )

    @staticmethod
    def _parse_role(record: Dict[str, Any], today: date) -> Role:
        description = _as_text(_first(record, "description", "summary", "highlights", "responsibilities"))
        duration = _as_text(_first(record, "duration", "dates", "period", "date_range"))
        start = _first(record, "startDate", "start_date", "start", "from")
        end = _first(record, "endDate", "end_date", "end", "to")
        is_current = bool(record.get("current") or record.get("isCurrentRole") or record.get("is_current")) \
            or is_ongoing(duration) or is_ongoing(end if isinstance(end, str) else "")

        years = parse_duration_years(duration, today=today)
        raw_years = record.get("years")
        if not years and isinstance(raw_years, (int, float)) and not isinstance(raw_years, bool):
            years = float(raw_years)
        if not years and start is not None:
            years = years_between(start, None if is_current else end, today=today)

        lowered = description.lower()
        technologies = [tech for tech in taxonomy.TECH_KEYWORDS if _contains_word(lowered, tech)]
        company = _as_text(_first(record, "company", "organization", "employer"))
        achievements = _as_list(_first(record, "achievements", "accomplishments", "impact"))
        achievements = _dedupe(achievements + extract_achievements(description))[:MAX_ACHIEVEMENTS]
        declared_type = _as_text(_first(record, "companyType", "company_type"))
        return Role(
            company=company,
            title=_as_text(_first(record, "title", "position", "role")),
            duration=duration,
            location=_as_text(record.get("location")),
            description=description,
            technologies=technologies,
            years=max(0.0, years),
            is_current=is_current,
            achievements=achievements,
            company_type=company_type_for(f"{company} {declared_type} {description}"),
        )

    @staticmethod
    def extract_industries(roles: List[Role]) -> List[str]:
        industries = []
        for role in roles:
            text = f" {role.company} {role.title} {role.description} ".lower()
            for industry, keywords in taxonomy.INDUSTRY_KEYWORDS.items():
                if industry not in industries and any(keyword in text for keyword in keywords):
                    industries.append(industry)
        return industries

    # ---------------- education & projects ----------------

    @classmethod
    def parse_education(cls, raw: Any, extra_certifications: Any = None, today: Optional[date] = None) -> Education:
        today = today or date.today()
        degrees = []
        certifications = []
        for record in _as_records(raw, "degrees"):
            degree = _as_text(_first(record, "degree", "title", "qualification"))
            kind = _as_text(record.get("type")).lower()
            if any(marker in f"{kind} {degree.lower()}" for marker in taxonomy.CERTIFICATION_MARKERS):
                if degree:
                    certifications.append(degree)
                continue
            year_raw = _first(record, "year", "graduationYear", "graduation_year", "endDate", "end_date", "end")
            year = parse_year(year_raw if isinstance(year_raw, (int, str)) else None)
            degrees.append(Degree(
                degree=degree,
                school=_as_text(_first(record, "school", "institution", "university", "college")),
                year=str(year) if year else _as_text(year_raw if isinstance(year_raw, str) else None),
                field=_as_text(_first(record, "field", "major", "field_of_study")) or cls._infer_field(degree),
            ))

        degrees = sorted(
            degrees,
            key=lambda d: (parse_year(d.year) or 0, cls.degree_rank(d.degree)),
            reverse=True,
        )
        certifications = _dedupe(certifications + _as_list(extra_certifications))
        recent_degree = any((parse_year(d.year) or 0) >= today.year - 3 for d in degrees)
        return Education(degrees=degrees, certifications=certifications,
                         continuous_learning=recent_degree or bool(certifications))

    @staticmethod
    def degree_rank(degree: str) -> int:
        lowered = f" {degree.lower()} "
        for markers, rank in taxonomy.DEGREE_RANKS:
            if any(marker in lowered for marker in markers):
                return rank
        return 0

    @staticmethod
    def _infer_field(degree: str) -> str:
        lowered = degree.lower()
        if "computer" in lowered or "software" in lowered:
            return "Computer Science"
        if "engineering" in lowered:
            return "Engineering"
        if "business" in lowered:
            return "Business"
        if "design" in lowered:
            return "Design"
        return ""

    @staticmethod
    def parse_projects(raw: Any) -> Projects:
        records = _as_records(raw, "projects")
        technologies = []
        types = []
        domains = []
        has_open_source = False
        for record in records:
            technologies.extend(_as_list(_first(record, "technologies", "tech", "stack", "tags")))
            has_open_source = has_open_source or bool(_first(record, "github", "repo", "repository"))
            desc = f" {_as_text(record.get('description')).lower()} "
            named = f"{_as_text(_first(record, 'name', 'title')).lower()} {desc}"
            for keywords, domain in taxonomy.PROJECT_DOMAINS:
                if domain not in domains and any(keyword in named for keyword in keywords):
                    domains.append(domain)
            for keywords, kind in (
                (("web app", "website", "web application"), "web"),
                (("mobile", "ios", "android"), "mobile"),
                ((" api", "backend"), "backend"),
                (("machine learning", " ai ", " ml "), "ai/ml"),
                (("blockchain", "crypto"), "blockchain"),
                ((" game",), "gaming"),
            ):
                if kind not in types and any(keyword in desc for keyword in keywords):
                    types.append(kind)
        technologies = _dedupe(technologies)
        return Projects(count=len(records), technologies=technologies, types=types,
                        has_open_source=has_open_source, domains=domains,
                        complexity=complexity_for(len(technologies), len(records)))

    @staticmethod
    def parse_contact(content: Dict[str, Any]) -> Contact:
        sources = [content]
        for key in ("contact", "social", "links", "socials"):
            if isinstance(content.get(key), dict):
                sources.insert(0, content[key])

        def pick(*keys):
            for source in sources:
                value = _first(source, *keys)
                if isinstance(value, str) and value.strip():
                    return value.strip()
            return None

        return Contact(
            email=pick("email"),
            phone=pick("phone"),
            github=pick("github"),
            linkedin=pick("linkedin"),
            website=pick("website", "portfolio", "url"),
            twitter=pick("twitter", "x"),
        )

    # ---------------- preferences ----------------

    @classmethod
    def infer_preferences(cls, content: Dict[str, Any], experience: Experience, skills: Skills) -> Preferences:
        raw = content.get("preferences") if isinstance(content.get("preferences"), dict) else {}

        preferred_roles = _as_list(_first(raw, "preferred_roles", "preferredRoles", "roles"))
        if not preferred_roles:
            preferred_roles = cls._infer_roles(experience.roles, skills)

        preferred_industries = _as_list(_first(raw, "preferred_industries", "preferredIndustries", "industries"))
        if not preferred_industries:
            preferred_industries = list(experience.industries)

        company_size = _as_list(_first(raw, "preferred_company_size", "preferredCompanySize", "company_size"))
        if not company_size:
            company_size = cls._infer_company_sizes(experience.roles)

        salary = SalaryRange.from_untrusted(
            _first(raw, "salary_range", "salaryRange", "salary")
            or _first(content, "salary_range", "salaryRange")
        )

        relocate_flag = _first(raw, "willing_to_relocate", "willingToRelocate", "relocate")
        willing_to_relocate = relocate_flag is True or bool(_RELOCATION_RE.search(_as_text(content.get("about"))))

        visa_flag = _first(raw, "needs_visa_sponsorship", "needsVisaSponsorship", "visa_sponsorship")
        if isinstance(visa_flag, bool):
            needs_visa = visa_flag
        else:
            needs_visa = bool(_VISA_RE.search(_as_text(content.get("about"))))

        return Preferences(
            preferred_roles=preferred_roles,
            preferred_industries=preferred_industries,
            remote_preference=cls.infer_remote_preference(content, raw, experience),
            preferred_company_size=company_size,
            salary_range=salary,
            willing_to_relocate=willing_to_relocate,
            needs_visa_sponsorship=needs_visa,
        )

    @staticmethod
    def infer_remote_preference(content: Dict[str, Any], raw_prefs: Dict[str, Any], experience: Experience) -> str:
        explicit = _first(raw_prefs, "remote_preference", "remotePreference", "work_preference", "workMode", "remote")
        if explicit is True:
            return "remote"
        if isinstance(explicit, str):
            lowered = explicit.lower()
            if lowered in ("remote", "hybrid", "onsite", "flexible"):
                return lowered
            for kind, pattern in _REMOTE_SIGNALS:
                if pattern.search(lowered):
                    return kind

        texts = [_as_text(content.get(key)) for key in ("about", "summary", "title", "location")]
        contact = content.get("contact")
        if isinstance(contact, dict):
            texts.append(_as_text(contact.get("location")))
        texts.extend(role.location for role in experience.roles)
        blob = " ".join(t for t in texts if t)

        found = [kind for kind, pattern in _REMOTE_SIGNALS if pattern.search(blob)]
        if len(found) == 1:
            return found[0]
        return "flexible"

    @staticmethod
    def _infer_roles(roles: List[Role], skills: Skills) -> List[str]:
        found = []
        for role in roles:
            title = role.title.lower()
            for keywords, label in taxonomy.ROLE_TITLE_KEYWORDS:
                if label not in found and any(_contains_word(title, keyword) for keyword in keywords):
                    found.append(label)
        if not found:
            frameworks = {normalize_skill(f) for f in skills.frameworks}
            if frameworks & {"react", "vue", "angular", "svelte", "next.js"}:
                found.append("Frontend Developer")
            if frameworks & {"express", "django", "spring", "fastapi", "flask", "rails"}:
                found.append("Backend Developer")
        return found

    @staticmethod
    def _infer_company_sizes(roles: List[Role]) -> List[str]:
        # only sizes a role was explicitly marked with
        return _dedupe(role.company_type for role in roles if role.company_type != "mid-size")

    # ---------------- market profile ----------------

    @staticmethod
    def analyze_market_profile(skills: Skills, experience: Experience,
                               projects: Optional[Projects] = None) -> MarketProfile:
        categories_present = sum(
            1 for name, _ in SKILL_CATEGORIES if getattr(skills, name)
        )
        uncommon = sum(
            1 for skill in skills.all
            if not any(key in taxonomy.COMMON_SKILLS for key in _skill_keys(skill))
        )
        rarity = 0.5 * categories_present / len(SKILL_CATEGORIES) + 0.5 * min(uncommon / 5.0, 1.0)

        recent_tech = set()
        if experience.roles:
            current = next((r for r in experience.roles if r.is_current), experience.roles[0])
            recent_tech = {normalize_skill(t) for t in current.technologies}
        demand_points = 0.0
        for skill in skills.all:
            keys = _skill_keys(skill)
            if any(key in taxonomy.IN_DEMAND_SKILLS for key in keys):
                demand_points += 1.0
                if any(key in recent_tech for key in keys):
                    demand_points += 0.5
        demand = 0.7 * min(demand_points / 6.0, 1.0) + 0.3 * LEVEL_WEIGHTS[experience.level]

        rarity = round(max(0.0, min(1.0, rarity)), 3)
        demand = round(max(0.0, min(1.0, demand)), 3)
        composite = (rarity + demand) / 2
        if composite >= 0.65:
            competitive = "high"
        elif composite >= 0.35:
            competitive = "medium"
        else:
            competitive = "low"

        breadth = sum(1 for name in VERSATILITY_CATEGORIES if getattr(skills, name))
        breadth += len(projects.domains) if projects else 0
        versatility = round(min(breadth / 8.0, 1.0), 3)

        by_key = {}
        for skill in skills.all:
            for key in _skill_keys(skill):
                by_key.setdefault(key, skill)
        combinations = [
            [by_key[first], by_key[second]]
            for first, second in taxonomy.VALUABLE_SKILL_PAIRS
            if first in by_key and second in by_key
        ]

        return MarketProfile(competitive_level=competitive, rarity_score=rarity, market_demand_score=demand,
                             versatility_score=versatility, unique_skill_combinations=combinations)


def parse_portfolio(content: Any, today: Optional[date] = None) -> ParsedPortfolioData:
    return PortfolioParser.parse_portfolio(content, today=today)
