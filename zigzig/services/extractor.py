from typing import List, Optional

from zigzig.helpers.prompts import EXTRACTION_PROMPT, EXTRACTION_SYSTEM
from zigzig.models.recruiter import JobRequirements
from zigzig.models.settings import MatchingSettings
from zigzig.utils.exceptions import (
    ExternalServiceError, ExtractionError, ModelError, RateLimitError, ValidationError,
)
from zigzig.utils.logging_config import PerformanceMonitor, get_matching_logger
from zigzig.utils.utils import parse_json_object

logger = get_matching_logger("extraction")

MODEL_FAILURES = (ModelError, ExternalServiceError, RateLimitError)


class JobRequirementExtractor:
    """Turns a free-text job description into ``JobRequirements`` via an LLM, falling back across models."""

    def __init__(self, client, settings: Optional[MatchingSettings] = None):
        self.client = client
        self.settings = settings or MatchingSettings()

    @property
    def models(self) -> List[str]:
        return self.settings.extraction_models

    def extract_requirements(self, description: str, title: Optional[str] = None,
                             company: Optional[str] = None) -> JobRequirements:
        if not description or not description.strip():
            raise ValidationError("Job description is required", field="description")

        prompt = EXTRACTION_PROMPT.format(
            title=title or "(not given)",
            company=company or "(not given)",
            description=description.strip(),
        )
        messages = [
            {"role": "system", "content": EXTRACTION_SYSTEM},
            {"role": "user", "content": prompt},
        ]

        for model in self.models:
            try:
                with PerformanceMonitor(f"extract_requirements[{model}]", logger):
                    raw = self.client.complete(
                        messages,
                        model=model,
                        temperature=self.settings.extraction_temperature,
                        max_tokens=self.settings.extraction_max_tokens,
                    )
                data = parse_json_object(raw, model_name=model)
            except MODEL_FAILURES as e:
                logger.warning(f"Extraction with model {model} failed, trying next: {e.message}")
                continue

            requirements = JobRequirements.from_untrusted(data)
            if not requirements.title and title:
                requirements = requirements.model_copy(update={"title": title})
            logger.info(
                f"Extracted requirements with {model}: "
                f"{len(requirements.required_skills)} required skills, level={requirements.experience_level}"
            )
            return requirements

        logger.error(f"All extraction models failed: {self.models}")
        raise ExtractionError(models=self.models)
