import json
import logging
import re
import time
from typing import Literal, Optional, TypeVar

from openai import OpenAI, RateLimitError
from pydantic import BaseModel, Field, ValidationError, model_validator

from . import config
from .errors import GenerationError
from .prompts import (
    ANSWER_SYSTEM_PROMPT,
    DRAFT_SYSTEM_PROMPT,
    DRAFT_USER_PROMPT,
    EXTRACT_COMPANY_PROMPT,
    EXTRACT_ENTITIES_PROMPT,
    JURISDICTION_LABELS,
    VALIDATE_SYSTEM_PROMPT,
    format_passages,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

ANSWER_FALLBACK = "I encountered an error processing your question. Please try again."
UNAVAILABLE_ANSWER = "AI assistant is not available. Please contact support."


class ValidationResult(BaseModel):
    valid: bool
    issues: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _fold_errors_and_warnings(cls, data):
        # Some models answer with {valid, errors, warnings} instead of issues.
        if isinstance(data, dict) and "issues" not in data:
            folded = list(data.get("errors") or []) + list(data.get("warnings") or [])
            data = {**data, "issues": folded}
        return data


class ExtractedCompany(BaseModel):
    name: str = Field(min_length=1)
    description: str
    jurisdiction: Literal["delaware", "france"]


class ExtractedFounder(BaseModel):
    email: str = Field(min_length=3)
    first_name: str
    last_name: str
    role: str
    equity_percentage: Optional[float] = None


class ExtractedInvestor(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    amount: float


class ExtractedEntities(BaseModel):
    company: ExtractedCompany
    founders: list[ExtractedFounder]
    investors: list[ExtractedInvestor]


def is_rate_limit_error(error: Exception) -> bool:
    if isinstance(error, RateLimitError):
        return True
    message = str(error)
    lowered = message.lower()
    return "429" in message or "RATELIMIT_EXCEEDED" in message or "quota" in lowered or "rate limit" in lowered


def _extract_fenced_block(text: str) -> str | None:
    blocks = re.findall(r"```(?:json)?\s*(.*?)\s*```", text, re.DOTALL | re.IGNORECASE)
    return blocks[0].strip() if blocks else None


def _extract_balanced_json_object(text: str) -> str | None:
    """Best-effort extraction of the first balanced top-level JSON object."""
    start_idx = text.find("{")
    if start_idx == -1:
        return None
    depth = 0
    in_string = False
    escape = False
    for i in range(start_idx, len(text)):
        ch = text[i]
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start_idx:i + 1]
    return None


def structured_text_candidates(raw_text: str) -> list[str]:
    text = (raw_text or "").strip()
    if not text:
        return []
    candidates = []
    fenced = _extract_fenced_block(text)
    if fenced:
        candidates.append(fenced)
    candidates.append(text)
    balanced = _extract_balanced_json_object(text)
    if balanced:
        candidates.append(balanced)
    seen = set()
    unique = []
    for candidate in candidates:
        if candidate in seen:
            continue
        seen.add(candidate)
        unique.append(candidate)
    return unique


def parse_structured(raw_text: str, response_schema: type[T]) -> T:
    errors = []
    for candidate in structured_text_candidates(raw_text):
        try:
            return response_schema.model_validate(json.loads(candidate, strict=False))
        except (json.JSONDecodeError, ValidationError) as e:
            errors.append(str(e))
    raise ValueError("Unable to parse structured response: " + " | ".join(errors[:3]))


class GenerationService:
    """OpenAI-compatible chat client used for drafting, validation, Q&A and extraction."""

    available = True

    def __init__(
        self,
        client: OpenAI | None = None,
        model_name: str | None = None,
        max_retries: int = config.LLM_MAX_RETRIES,
        min_backoff: float = config.LLM_MIN_BACKOFF,
        max_backoff: float = config.LLM_MAX_BACKOFF,
        backoff_factor: float = config.LLM_BACKOFF_FACTOR,
        sleep=time.sleep,
    ):
        self.model_name = model_name or config.LLM_MODEL
        self.client = client or OpenAI(api_key=config.LLM_API_KEY, base_url=config.LLM_BASE_URL)
        self.max_retries = max_retries
        self.min_backoff = min_backoff
        self.max_backoff = max_backoff
        self.backoff_factor = backoff_factor
        self._sleep = sleep

    def backoff_for(self, attempt: int) -> float:
        return min(self.min_backoff * (self.backoff_factor ** attempt), self.max_backoff)

    def _create(self, messages: list[dict]) -> str:
        for attempt in range(self.max_retries + 1):
            try:
                response = self.client.chat.completions.create(model=self.model_name, messages=messages)
                if not getattr(response, "choices", None):
                    raise GenerationError(f"Provider {self.model_name} returned no output")
                return (response.choices[0].message.content or "").strip()
            except GenerationError:
                raise
            except Exception as e:
                if not is_rate_limit_error(e):
                    logger.error("LLM call to %s failed: %s", self.model_name, e)
                    raise GenerationError(str(e)) from e
                if attempt >= self.max_retries:
                    logger.error("LLM rate limited after %s attempts: %s", attempt + 1, e)
                    raise GenerationError(str(e)) from e
                wait_time = self.backoff_for(attempt)
                logger.warning(
                    "LLM rate limited (attempt %s/%s), retrying in %ss...",
                    attempt + 1, self.max_retries + 1, wait_time,
                )
                self._sleep(wait_time)
        raise GenerationError("LLM call failed")

    def generate_text(self, system_prompt: str, user_prompt: str, context: str | None = None) -> str:
        messages = [{"role": "system", "content": system_prompt}]
        if context:
            messages.append({"role": "system", "content": context})
        messages.append({"role": "user", "content": user_prompt})
        return self._create(messages)

    def generate_structured(self, system_prompt: str, user_prompt: str, response_schema: type[T]) -> T:
        schema_json = json.dumps(response_schema.model_json_schema())
        augmented = (
            f"{system_prompt}\n\n"
            "Respond with ONLY valid JSON matching the following JSON Schema, "
            "without markdown fences or any text around it.\n\n"
            f"EXPECTED SCHEMA:\n{schema_json}"
        )
        text = self.generate_text(augmented, user_prompt)
        return parse_structured(text, response_schema)

    def draft_document(self, document_type: str, company, params: dict | None = None) -> str:
        jurisdiction = getattr(company.jurisdiction, "value", company.jurisdiction)
        system_prompt = DRAFT_SYSTEM_PROMPT.format(document_type=document_type)
        user_prompt = DRAFT_USER_PROMPT.format(
            document_type=document_type,
            company_name=company.name,
            jurisdiction=JURISDICTION_LABELS.get(jurisdiction, jurisdiction),
            params=json.dumps(params or {}, indent=2, default=str),
        )
        draft = self.generate_text(system_prompt, user_prompt)
        if not draft:
            raise GenerationError("Failed to generate document.")
        return draft

    def validate_document(self, document_type: str, content: str) -> ValidationResult:
        try:
            return self.generate_structured(
                VALIDATE_SYSTEM_PROMPT.format(document_type=document_type),
                f"Document content:\n{content}",
                ValidationResult,
            )
        except (GenerationError, ValueError) as e:
            logger.error("Document validation failed: %s", e)
            return ValidationResult(valid=False, issues=["Validation error occurred"])

    def answer_question(self, question: str, company_context: str, passages: list[str] | None = None) -> str:
        try:
            answer = self.generate_text(
                ANSWER_SYSTEM_PROMPT, question, context=format_passages(company_context, passages or [])
            )
        except GenerationError as e:
            logger.error("answer_question failed: %s", e)
            return ANSWER_FALLBACK
        return answer or "I apologize, I couldn't generate a response."

    def extract_entities(self, conversation: str) -> ExtractedEntities | None:
        try:
            return self.generate_structured(EXTRACT_ENTITIES_PROMPT, conversation, ExtractedEntities)
        except (GenerationError, ValueError) as e:
            logger.error("extract_entities failed: %s", e)
            return None

    def extract_company(self, conversation: str) -> ExtractedCompany | None:
        try:
            return self.generate_structured(EXTRACT_COMPANY_PROMPT, conversation, ExtractedCompany)
        except (GenerationError, ValueError) as e:
            logger.error("extract_company failed: %s", e)
            return None


class UnavailableGeneration:
    available = False

    def draft_document(self, document_type: str, company, params: dict | None = None) -> str:
        return "Document drafting is not available. Please contact support."

    def validate_document(self, document_type: str, content: str) -> ValidationResult:
        return ValidationResult(valid=False, issues=["Validation service not available"])

    def answer_question(self, question: str, company_context: str, passages: list[str] | None = None) -> str:
        return UNAVAILABLE_ANSWER

    def extract_entities(self, conversation: str) -> ExtractedEntities | None:
        return None

    def extract_company(self, conversation: str) -> ExtractedCompany | None:
        return None
