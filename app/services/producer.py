"""
Document producer adapter: builds or rewrites infographic documents with an LLM.

Uses Ollama's /api/generate endpoint in JSON mode with OLLAMA_LLM_MODEL.
Prompts are module-level constants so they can be tuned without touching
logic code.

Public API
----------
InfographicProducer.generate(prompt)  -> Document
InfographicProducer.optimize(doc)     -> Document
InfographicProducer.check_health()    -> bool

Both producer calls raise GenerationError on any network, parse or schema
failure; the caller keeps its previous document.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
from pydantic import ValidationError

from app.config import settings
from app.models.schemas import DataPoint, Document, Section, Source, merge_sources
from app.utils.helpers import generate_section_id, truncate_text

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """The producer could not return a document that satisfies the schema."""


_JSON_STRING = r'"(?:\\.|[^"\\])*"'
_PYTHON_LITERALS = {"True": "true", "False": "false", "None": "null"}


def _sub_outside_strings(pattern: str, repl: Callable[[re.Match], str], text: str) -> str:
    """``re.sub`` that leaves JSON string literals untouched; *pattern* groups start at 2."""

    def _replace(match: re.Match) -> str:
        if match.group(1) is not None:
            return match.group(1)
        return repl(match)

    return re.sub(f"({_JSON_STRING})|{pattern}", _replace, text)


# ---------------------------------------------------------------------------
# Prompt templates — edit these to tune LLM output without touching logic
# ---------------------------------------------------------------------------

_DOCUMENT_SHAPE = """\
{{
  "title": "Main title of the infographic",
  "subtitle": "A catchy subtitle",
  "themeColor": "#rrggbb primary accent color",
  "backgroundColor": "#rrggbb background, usually light or dark",
  "footer": "Source citation or footer text",
  "sections": [
    {{
      "id": "s1",
      "type": "bar|pie|line|stat|list",
      "title": "Section header",
      "description": "Short explanation of the data",
      "chartDescription": "Additional detail or context for the chart",
      "data": [{{"name": "Label for the data point", "value": 42, "label": "Optional text for list items"}}]
    }}
  ],
  "sources": [{{"title": "Citation title", "uri": "https://..."}}]
}}"""

_GENERATE_PROMPT = """\
Generate a structured JSON document for an infographic based on this request: "{prompt}".

Guidelines:
1. LANGUAGE: {language_rule}
2. Create realistic, interesting data if the user doesn't provide specific numbers.
3. Choose the best chart type for each section's data: "bar" to compare categories, \
"pie" for parts of a whole, "line" for trends over time, "stat" for a few headline \
numbers, "list" for ordered points where each item's "label" carries the text.
4. Use a modern, professional color palette; themeColor and backgroundColor must be hex colors.
5. Ensure at least 3 distinct sections unless the user asks for fewer.
6. Every section needs a unique "id" and every "value" must be a plain number.
7. If you rely on real published figures, list them in "sources".

Respond ONLY with a valid JSON object of this shape. No explanation, no markdown:
""" + _DOCUMENT_SHAPE

_GENERATE_RETRY_PROMPT = """\
Create an infographic as JSON for: "{prompt}".

{language_rule}

Return ONLY a JSON object — nothing else, no markdown:
{{"title": "...", "subtitle": "...", "themeColor": "#3b82f6", "backgroundColor": "#ffffff", \
"sections": [{{"id": "s1", "type": "bar", "title": "...", "data": [{{"name": "...", "value": 10}}]}}]}}\
"""

_OPTIMIZE_PROMPT = """\
Analyze the provided infographic JSON and improve its copywriting.

Goal: make titles, subtitles, descriptions and labels more engaging, professional and concise.

Rules:
1. KEEP every "id", "type" and numerical "value" field exactly as it is.
2. KEEP the JSON structure: same sections in the same order, same number of data points.
3. ONLY modify text fields for better flow and impact.
4. Maintain the original meaning.
5. LANGUAGE: {language_rule}

Input:
{document_json}

Respond ONLY with the improved JSON object. No explanation, no markdown.\
"""

_OPTIMIZE_RETRY_PROMPT = """\
Rewrite only the text fields of this infographic JSON to be more concise and engaging.
Keep all ids, types and numbers unchanged. {language_rule}

{document_json}

Return ONLY the JSON object — nothing else.\
"""


# ---------------------------------------------------------------------------
# Main service class
# ---------------------------------------------------------------------------

class InfographicProducer:
    """
    LLM producer via Ollama /api/generate.

    Retries JSON parsing up to MAX_JSON_RETRIES times with a simpler prompt.
    Handles small models' tendency to wrap JSON in markdown code fences.
    """

    MAX_JSON_RETRIES: int = 2
    LLM_TIMEOUT: float = float(settings.OLLAMA_TIMEOUT)

    GENERATE_PROMPT = _GENERATE_PROMPT
    GENERATE_RETRY_PROMPT = _GENERATE_RETRY_PROMPT
    OPTIMIZE_PROMPT = _OPTIMIZE_PROMPT
    OPTIMIZE_RETRY_PROMPT = _OPTIMIZE_RETRY_PROMPT

    def __init__(
        self,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url or settings.OLLAMA_BASE_URL
        self.model = model or settings.OLLAMA_LLM_MODEL
        self.timeout = httpx.Timeout(self.LLM_TIMEOUT, connect=10.0)
        self._transport = transport

    # ------------------------------------------------------------------
    # Public producer methods
    # ------------------------------------------------------------------

    async def generate(self, prompt: str) -> Document:
        """
        Build a new document from a free-text request.

        Citation metadata returned by the call (a ``citations``/``sources``
        list in the response envelope, and the document's own ``sources``)
        is merged into ``Document.sources``, first-seen ``uri`` wins.

        Raises:
            GenerationError: network failure, unparsable output or a payload
                that does not satisfy the document schema.
        """
        language_rule = self._language_rule()
        payload, envelope = await self._call_llm_json(
            self.GENERATE_PROMPT.format(prompt=prompt, language_rule=language_rule),
            retry_prompt=self.GENERATE_RETRY_PROMPT.format(
                prompt=prompt, language_rule=language_rule
            ),
        )
        document = self._to_document(payload)

        sources = merge_sources(document.sources, self._extract_citations(envelope))
        document = document.model_copy(update={"sources": sources or None})

        logger.info(
            "generate: %d section(s), %d source(s) for prompt %r",
            len(document.sections),
            len(sources),
            truncate_text(prompt, 80),
        )
        return document

    async def optimize(self, doc: Document) -> Document:
        """
        Rewrite the text of *doc* for tone and clarity.

        The rewrite is merged back onto *doc*: ids, types, numeric values,
        colors and the shape of every section come from *doc*, only text
        fields come from the model. ``doc.sources`` is re-attached because
        the model is not trusted to carry provenance through.

        Raises:
            GenerationError: as for :meth:`generate`.
        """
        document_json = doc.model_dump_json(
            by_alias=True, exclude_none=True, exclude={"sources"}
        )
        language_rule = self._language_rule(keep_input=True)
        payload, _ = await self._call_llm_json(
            self.OPTIMIZE_PROMPT.format(
                document_json=document_json, language_rule=language_rule
            ),
            retry_prompt=self.OPTIMIZE_RETRY_PROMPT.format(
                document_json=document_json, language_rule=language_rule
            ),
        )
        rewritten = self._to_document(payload)
        merged = self._merge_rewrite(doc, rewritten)

        logger.info("optimize: rewrote text of %d section(s)", len(merged.sections))
        return merged.model_copy(update={"sources": doc.sources})

    async def check_health(self) -> bool:
        """Return ``True`` if Ollama is reachable and returns HTTP 200."""
        try:
            async with httpx.AsyncClient(timeout=5.0, transport=self._transport) as client:
                resp = await client.get(f"{self.base_url}/api/tags")
                return resp.status_code == 200
        except Exception as exc:
            logger.error("Ollama health check failed: %s", exc)
            return False

    # ------------------------------------------------------------------
    # Merge rules
    # ------------------------------------------------------------------

    @staticmethod
    def _merge_rewrite(original: Document, rewritten: Document) -> Document:
        """Take text from *rewritten*, everything structural from *original*."""
        by_id: Dict[str, Section] = {s.id: s for s in rewritten.sections}
        sections: List[Section] = []
        for position, section in enumerate(original.sections):
            candidate = by_id.get(section.id)
            if candidate is None and position < len(rewritten.sections):
                candidate = rewritten.sections[position]
            if candidate is None:
                sections.append(section)
                continue
            sections.append(InfographicProducer._merge_section_text(section, candidate))

        return original.model_copy(
            update={
                "title": rewritten.title,
                "subtitle": rewritten.subtitle,
                "footer": rewritten.footer if rewritten.footer is not None else original.footer,
                "sections": sections,
            }
        )

    @staticmethod
    def _merge_section_text(section: Section, candidate: Section) -> Section:
        data: List[DataPoint] = []
        for j, point in enumerate(section.data):
            if j >= len(candidate.data):
                data.append(point)
                continue
            new_point = candidate.data[j]
            data.append(
                point.model_copy(
                    update={
                        "name": new_point.name,
                        "label": new_point.label if new_point.label is not None else point.label,
                    }
                )
            )
        return section.model_copy(
            update={
                "title": candidate.title,
                "description": (
                    candidate.description
                    if candidate.description is not None
                    else section.description
                ),
                "chart_description": (
                    candidate.chart_description
                    if candidate.chart_description is not None
                    else section.chart_description
                ),
                "data": data,
            }
        )

    @staticmethod
    def _ensure_unique_ids(payload: Dict[str, Any]) -> Dict[str, Any]:
        """Re-id sections whose id repeats an earlier one, before validation."""
        sections = payload.get("sections")
        if not isinstance(sections, list):
            return payload
        taken = {
            s["id"] for s in sections if isinstance(s, dict) and isinstance(s.get("id"), str)
        }
        seen: set = set()
        renamed: List[Any] = []
        for section in sections:
            if isinstance(section, dict) and isinstance(section.get("id"), str):
                if section["id"] in seen:
                    new_id = generate_section_id(taken | seen)
                    logger.warning("Duplicate section id %r renamed to %r", section["id"], new_id)
                    section = {**section, "id": new_id}
                seen.add(section["id"])
            renamed.append(section)
        return {**payload, "sections": renamed}

    @staticmethod
    def _extract_citations(envelope: Dict[str, Any]) -> List[Source]:
        """Map optional citation metadata from the response envelope to sources."""
        raw = envelope.get("citations") or envelope.get("sources") or []
        sources: List[Source] = []
        if not isinstance(raw, list):
            return sources
        for item in raw:
            if not isinstance(item, dict):
                continue
            uri = item.get("uri") or item.get("url")
            if not isinstance(uri, str) or not uri:
                continue
            title = item.get("title")
            sources.append(Source(title=title if isinstance(title, str) else uri, uri=uri))
        return sources

    @staticmethod
    def _to_document(payload: Any) -> Document:
        """Validate parsed JSON against the document schema."""
        if isinstance(payload, dict) and isinstance(payload.get("document"), dict):
            payload = payload["document"]
        if not isinstance(payload, dict):
            raise GenerationError("Producer returned JSON that is not an object")
        try:
            return Document.model_validate(InfographicProducer._ensure_unique_ids(payload))
        except ValidationError as exc:
            logger.error(
                "Producer output violates the document schema: %d error(s): %s",
                exc.error_count(),
                truncate_text(str(exc), 400),
            )
            raise GenerationError("Producer output violates the document schema") from exc

    @staticmethod
    def _language_rule(keep_input: bool = False) -> str:
        if settings.OUTPUT_LANGUAGE:
            return (
                f"All text MUST be in {settings.OUTPUT_LANGUAGE} "
                "unless the user explicitly requests another language."
            )
        if keep_input:
            return "Keep the text in the same language as the input."
        return "Write all text in the same language as the request."

    # ------------------------------------------------------------------
    # LLM transport
    # ------------------------------------------------------------------

    async def _call_llm(self, prompt: str) -> Tuple[str, Dict[str, Any]]:
        """
        POST to Ollama /api/generate and return ``(response_text, envelope)``.

        Raises GenerationError on timeout, connection failure or non-200.
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    f"{self.base_url}/api/generate",
                    json={
                        "model": self.model,
                        "prompt": prompt,
                        "stream": False,
                        "format": "json",
                        "options": {
                            "num_predict": settings.LLM_MAX_TOKENS,
                            "temperature": settings.LLM_TEMPERATURE,
                        },
                    },
                )
        except httpx.TimeoutException as exc:
            logger.error("_call_llm: request timed out after %.0f s", self.LLM_TIMEOUT)
            raise GenerationError("Producer request timed out") from exc
        except httpx.HTTPError as exc:
            logger.error("_call_llm: connection error — %s", exc)
            raise GenerationError("Producer is unreachable") from exc

        if resp.status_code != 200:
            logger.error(
                "_call_llm: Ollama returned HTTP %d: %s",
                resp.status_code,
                resp.text[:300],
            )
            raise GenerationError(f"Producer returned HTTP {resp.status_code}")

        try:
            envelope = resp.json()
        except ValueError as exc:
            raise GenerationError("Producer returned a malformed envelope") from exc
        if not isinstance(envelope, dict):
            raise GenerationError("Producer returned a malformed envelope")

        text = envelope.get("response")
        return (text if isinstance(text, str) else ""), envelope

    async def _call_llm_json(
        self,
        prompt: str,
        retry_prompt: Optional[str] = None,
    ) -> Tuple[Any, Dict[str, Any]]:
        """
        Call the LLM and parse the response as JSON.

        Retries up to MAX_JSON_RETRIES times.  On retry, uses *retry_prompt*
        (a simpler, more directive prompt) if provided, otherwise repeats the
        original prompt.

        Returns ``(parsed_value, envelope)``.
        """
        prompts = [prompt] + [retry_prompt or prompt] * (self.MAX_JSON_RETRIES - 1)

        for attempt, current_prompt in enumerate(prompts, start=1):
            response_text, envelope = await self._call_llm(current_prompt)

            if not response_text:
                raise GenerationError("No response from producer")

            success, parsed = self._parse_json_robust(response_text)
            if success:
                if attempt > 1:
                    logger.info(
                        "_call_llm_json: JSON parsed successfully on attempt %d",
                        attempt,
                    )
                return parsed, envelope

            if attempt < self.MAX_JSON_RETRIES:
                logger.warning(
                    "_call_llm_json: JSON parse failed on attempt %d/%d, retrying",
                    attempt,
                    self.MAX_JSON_RETRIES,
                )

        logger.error(
            "_call_llm_json: all %d JSON parse attempts failed", self.MAX_JSON_RETRIES
        )
        raise GenerationError("Producer output is not valid JSON")

    # ------------------------------------------------------------------
    # JSON parsing
    # ------------------------------------------------------------------

    def _parse_json_robust(self, response: str) -> Tuple[bool, Any]:
        """
        Try multiple strategies to parse a JSON object from messy LLM output.

        Handles:
        - Markdown code fences (```json … ```, ``` … ```)
        - Trailing commas before ] or }
        - Python-style True / False / None
        - Surrounding prose — finds the first balanced {...} block
        - Missing closing brace (adds one and retries)

        Returns ``(success, parsed_value)``.
        """
        if not response:
            return False, None

        text = response.strip()

        ok, val = self._try_json(text)
        if ok:
            return True, val

        stripped = self._strip_code_fences(text)
        if stripped != text:
            ok, val = self._try_json(stripped)
            if ok:
                return True, val
            text = stripped

        fixed = self._fix_json_issues(text)
        ok, val = self._try_json(fixed)
        if ok:
            return True, val

        fragment = self._extract_json_structure(text, "{", "}")
        if fragment:
            ok, val = self._try_json(fragment)
            if ok:
                return True, val
            ok, val = self._try_json(self._fix_json_issues(fragment))
            if ok:
                return True, val

        for suffix in ("}", "]}", "}]}"):
            ok, val = self._try_json(fixed + suffix)
            if ok:
                logger.debug("_parse_json_robust: recovered with suffix %r", suffix)
                return True, val

        logger.warning(
            "_parse_json_robust: all strategies failed. Preview: %s",
            response[:400],
        )
        return False, None

    @staticmethod
    def _try_json(text: str) -> Tuple[bool, Any]:
        try:
            return True, json.loads(text)
        except (json.JSONDecodeError, ValueError):
            return False, None

    @staticmethod
    def _strip_code_fences(text: str) -> str:
        """Remove ```json / ``` delimiters that LLMs often wrap output in."""
        text = re.sub(r"^```(?:json|javascript|text)?\s*\n?", "", text, flags=re.IGNORECASE)
        text = re.sub(r"\n?```\s*$", "", text)
        return text.strip()

    @staticmethod
    def _fix_json_issues(text: str) -> str:
        """Repair the most common JSON mangling patterns from LLMs, outside string literals."""
        text = _sub_outside_strings(r",(\s*[}\]])", lambda m: m.group(2), text)
        text = _sub_outside_strings(
            r"\b(True|False|None)\b", lambda m: _PYTHON_LITERALS[m.group(2)], text
        )
        text = _sub_outside_strings(r"//[^\n]*", lambda m: "", text)
        return text.strip()

    @staticmethod
    def _extract_json_structure(text: str, open_b: str, close_b: str) -> str:
        """
        Find the first complete balanced open_b … close_b structure in *text*.
        Returns the matched fragment, or empty string if not found.
        """
        start = text.find(open_b)
        if start == -1:
            return ""

        depth = 0
        in_string = False
        escape_next = False

        for i, ch in enumerate(text[start:], start=start):
            if escape_next:
                escape_next = False
                continue
            if ch == "\\" and in_string:
                escape_next = True
                continue
            if ch == '"':
                in_string = not in_string
                continue
            if in_string:
                continue
            if ch == open_b:
                depth += 1
            elif ch == close_b:
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        return ""
