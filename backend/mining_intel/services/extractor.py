# backend/mining_intel/services/extractor.py
"""
Intelligence Extractor: turns scraped markdown into structured mining
intelligence via the LLM.

The reply contract is strict. Anything other than a JSON object carrying both
``leadership`` and ``assets`` is a hard failure (ExtractionError), which the
orchestrator treats exactly like a transport fault: the run is retried, never
stored with empty defaults. An out-of-domain company is a valid reply
(``is_mining_sector: false`` with empty lists), not an error.
"""
from __future__ import annotations

import json
import logging
import textwrap
from typing import Any, Dict

import httpx
from pydantic import ValidationError

from ..core.config import get_settings
from ..schemas.intelligence import IntelligenceReport
from .llm import get_llm_client, gemini_generate_url, limit_llm_concurrency

logger = logging.getLogger(__name__)
settings = get_settings()

TRUNCATION_MARKER = "\n\n[CONTEXT TRUNCATED FOR TOKEN SAVING]"
REQUIRED_KEYS = ("leadership", "assets")

OUTPUT_SCHEMA = """
{
  "official_name": "Full Official Company Name",
  "is_mining_sector": boolean,
  "leadership": [
    {
      "name": "string",
      "expertise": ["string"],
      "technical_summary": ["bullet 1", "bullet 2", "bullet 3"]
    }
  ],
  "assets": [
    {
      "name": "string",
      "commodities": ["string"],
      "status": "string (developing/operating/care and maintenance)",
      "country": "string",
      "state_province": "string",
      "town": "string",
      "latitude": float,
      "longitude": float
    }
  ]
}
""".strip()


class ExtractionError(Exception):
    """The LLM call or its reply failed the contract; the run should be retried."""


def build_system_prompt() -> str:
    return textwrap.dedent(
        """
        Role: Expert Mining Analyst AI.
        Task: Extract structured JSON about the named company from the markdown context.

        STRICT INSTRUCTIONS:
        1. Output ONLY valid JSON matching the schema below. All keys must be present.
        2. Domain Lock: If the company is NOT in the mining/resources/extraction sector,
           return {"official_name": <name>, "is_mining_sector": false, "leadership": [], "assets": []}.
        3. Missing fields: use null or [].
        4. Leadership: extract top executives and board members. "technical_summary" must be
           exactly 3 precise bullet points on their mining/operational career.
        5. Assets: extract mines and projects. Estimate latitude/longitude decimals from
           location descriptions if they are not explicit.
        6. Official Name: the full legal/official company name, even if the submitted
           name was an alias, abbreviation or misspelling.

        REQUIRED JSON SCHEMA:
        """
    ).strip() + "\n" + OUTPUT_SCHEMA


def truncate_context(context: str, max_chars: int | None = None) -> str:
    limit = max_chars or settings.LLM_MAX_CONTEXT_CHARS
    if len(context) <= limit:
        return context
    return context[:limit] + TRUNCATION_MARKER


class IntelligenceExtractor:
    def __init__(self, transport: httpx.BaseTransport | None = None) -> None:
        self._transport = transport

    def _build_payload(self, company_name: str, context: str) -> Dict[str, Any]:
        user_prompt = (
            f'Company: "{company_name}"\n\n'
            f"--- CONTEXT TO ANALYZE ---\n{context}"
        )
        return {
            "systemInstruction": {"parts": [{"text": build_system_prompt()}]},
            "contents": [
                {"role": "user", "parts": [{"text": user_prompt}]},
            ],
            "generationConfig": {
                # Low temperature to keep the model from inventing data
                "temperature": settings.LLM_TEMPERATURE,
                "responseMimeType": "application/json",
            },
        }

    @staticmethod
    def _response_text(body: Any) -> str | None:
        try:
            text = body["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            return None
        return text if isinstance(text, str) and text.strip() else None

    def parse_reply(self, company_name: str, raw_text: str) -> IntelligenceReport:
        try:
            data = json.loads(raw_text)
        except json.JSONDecodeError as e:
            logger.warning(
                "LLM returned non-JSON text",
                extra={"company": company_name, "step": "extract"},
            )
            raise ExtractionError(f"LLM returned invalid JSON for {company_name}.") from e

        if not isinstance(data, dict) or any(k not in data for k in REQUIRED_KEYS):
            logger.warning(
                "LLM returned invalid JSON structure: %s",
                raw_text[:500],
                extra={"company": company_name, "step": "extract"},
            )
            raise ExtractionError(f"LLM returned invalid JSON structure for {company_name}.")

        try:
            return IntelligenceReport.model_validate(data)
        except ValidationError as e:
            raise ExtractionError(
                f"LLM reply failed validation for {company_name}: {e.error_count()} errors"
            ) from e

    def extract(self, company_name: str, context: str) -> IntelligenceReport:
        logger.info(
            "Starting AI extraction",
            extra={"company": company_name, "provider": "gemini", "step": "extract"},
        )

        truncated = truncate_context(context)
        if len(truncated) != len(context):
            logger.info(
                "Context truncated from %d characters",
                len(context),
                extra={"company": company_name, "step": "extract"},
            )

        payload = self._build_payload(company_name, truncated)

        with get_llm_client(self._transport) as client:
            try:
                with limit_llm_concurrency():
                    resp = client.post(gemini_generate_url(), json=payload)
            except httpx.HTTPError as e:
                logger.error(
                    "LLM request failed: %s",
                    e,
                    extra={"company": company_name, "provider": "gemini", "step": "extract"},
                )
                raise ExtractionError(f"LLM request failed for {company_name}: {e}") from e

        if resp.is_error:
            logger.error(
                "LLM request failed. Status: %s, Body preview: %s",
                resp.status_code,
                resp.text[:2000],
                extra={"company": company_name, "provider": "gemini", "step": "extract"},
            )
            raise ExtractionError(
                f"LLM request failed with status {resp.status_code} for {company_name}."
            )

        try:
            body = resp.json()
        except ValueError:
            body = None
        raw_text = self._response_text(body)
        if raw_text is None:
            logger.warning(
                "LLM returned empty text",
                extra={"company": company_name, "provider": "gemini", "step": "extract"},
            )
            raise ExtractionError(f"LLM returned empty text for {company_name}.")

        report = self.parse_reply(company_name, raw_text)
        logger.info(
            "Extraction finished: %d executives, %d assets, mining=%s",
            len(report.leadership),
            len(report.assets),
            report.is_mining_sector,
            extra={"company": company_name, "step": "extract"},
        )
        return report
