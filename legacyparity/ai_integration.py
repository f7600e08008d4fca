"""Translation service integration for LegacyParity"""

import base64
import binascii
import json
import os
import re
import time
from dataclasses import dataclass
from typing import Dict, Optional
import logging

import jsonschema
import requests

from legacyparity.config import (
    TRANSLATION_CONFIG, TRANSLATION_DIRECTIVES, OUTPUT_LINE_EXAMPLE,
    FIXTURE_CONTRACT, get_translation_model,
)
from legacyparity.errors import TranslationError, CredentialsError
from legacyparity.tasks import SourceKind

logger = logging.getLogger(__name__)


@dataclass
class TranslationResult:
    """Candidate program produced by the translation service"""
    candidate_source: str
    raw_transcript: str  # verbatim service response body
    notes: Optional[str] = None
    model: str = ""

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization"""
        return {
            "candidate_source": self.candidate_source,
            "raw_transcript": self.raw_transcript,
            "notes": self.notes,
            "model": self.model,
        }


def response_schema(code_field: str) -> Dict:
    """JSON schema for the structured object the service must return"""
    return {
        "type": "object",
        "properties": {
            code_field: {"type": "string"},
            "notes": {"type": "string"},
        },
        "required": [code_field],
    }


class TranslationClient:
    """
    Client for the Gemini generateContent API.

    Sends legacy source plus formatting directives, asks for a JSON object
    that carries the Rust rewrite, and validates that object against the
    same schema it sent.

    Retry policy:
    - connection errors, timeouts and 408/429/5xx are retried with
      exponential backoff, up to max_retries
    - any other non-2xx status is a hard failure
    - a 2xx response that does not match the schema is a hard failure
    """

    def __init__(self, model_id: str = None, mock_mode: bool = False,
                 session: Optional[requests.Session] = None):
        model_id = model_id or TRANSLATION_CONFIG["default_model"]
        self.model_id = model_id
        self.config = get_translation_model(model_id)
        self.mock_mode = mock_mode
        self.endpoint = TRANSLATION_CONFIG["endpoint"].rstrip("/")
        self.timeout = TRANSLATION_CONFIG["timeout_seconds"]
        self.max_retries = TRANSLATION_CONFIG["max_retries"]
        self.base_delay = TRANSLATION_CONFIG["base_delay_seconds"]
        self.max_delay = TRANSLATION_CONFIG["max_delay_seconds"]
        self.retry_statuses = set(TRANSLATION_CONFIG["retry_statuses"])
        self.code_field = self.config["code_field"]
        self.schema = response_schema(self.code_field)
        self.session = session or requests.Session()

        if mock_mode:
            logger.warning(f"[MOCK MODE] ENABLED for {model_id} - Using fake translations for testing")

    def translate(self, source_text: str, source_kind: SourceKind) -> TranslationResult:
        """
        Translate a legacy program into the candidate language.

        Raises:
            TranslationError: on a non-success status, an unparseable body,
                or a missing code field
            CredentialsError: if no API key is configured (outside mock mode)
        """
        api_key = os.getenv(TRANSLATION_CONFIG["api_key_env_var"])
        if not api_key:
            if self.mock_mode:
                logger.info("Mock mode: returning fake translation")
                return self._generate_mock_translation(source_kind)
            raise CredentialsError(
                f"{TRANSLATION_CONFIG['api_key_env_var']} not set. Set the environment variable "
                f"or use --mock flag for testing."
            )

        payload = self._build_payload(source_text, source_kind)
        url = f"{self.endpoint}/models/{self.config['model']}:generateContent"

        logger.info(f"Invoking {self.config['model']} for {source_kind.label} modernization...")
        raw_text = self._post_with_retry(url, payload, api_key)
        result = self.parse_response(raw_text)

        logger.info(f"[OK] Generated {len(result.candidate_source.splitlines())} lines of "
                    f"{TRANSLATION_CONFIG['target_language']} code")
        return result

    def _build_payload(self, source_text: str, source_kind: SourceKind) -> Dict:
        """Build the generateContent request body"""
        target = TRANSLATION_CONFIG["target_language"]
        directives = " ".join(f"- {d}" for d in TRANSLATION_DIRECTIVES)

        if self.config["base64"]:
            encoded = base64.b64encode(source_text.encode("utf-8")).decode("ascii")
            user_text = f"Modernize this base64-encoded {source_kind.label} code to {target}:\n{encoded}\n"
            return_clause = f"Return the {target} code as Base64 in '{self.code_field}'."
        else:
            user_text = f"Modernize this {source_kind.label} code to {target}:\n{source_text}\n"
            return_clause = f"Return the {target} code as plain text in '{self.code_field}'."

        system_instruction = (
            f"Modernize the input {source_kind.label} code to idiomatic {target}. "
            f"Use file I/O: read from '{FIXTURE_CONTRACT['input_file']}' and write to "
            f"'{FIXTURE_CONTRACT['output_file']}'. "
            f"CRITICAL REQUIREMENTS: {directives} "
            f"Example output formatting: {OUTPUT_LINE_EXAMPLE} "
            f"{return_clause}"
        )

        generation_config = {
            "temperature": self.config["temperature"],
            "responseMimeType": "application/json",
            "responseSchema": self.schema,
        }
        if self.config.get("thinking"):
            generation_config["thinkingConfig"] = {
                "includeThoughts": True,
                "thinkingLevel": self.config.get("thinking_level", "high"),
            }

        return {
            "system_instruction": {"parts": [{"text": system_instruction}]},
            "contents": [{"role": "user", "parts": [{"text": user_text}]}],
            "generationConfig": generation_config,
        }

    def _post_with_retry(self, url: str, payload: Dict, api_key: str) -> str:
        """POST with exponential backoff on transient failures; returns the body text"""
        last_error = None

        for attempt in range(self.max_retries + 1):
            try:
                response = self.session.post(
                    url,
                    params={"key": api_key},
                    json=payload,
                    timeout=self.timeout,
                )
                logger.info(f"Translation response: status={response.status_code}, "
                            f"content_length={len(response.content)}")

                if 200 <= response.status_code < 300:
                    return response.text

                error = TranslationError(
                    f"API Error {response.status_code}: {response.text}",
                    status_code=response.status_code,
                )
                if response.status_code not in self.retry_statuses:
                    raise error
                last_error = error

            except requests.exceptions.Timeout as e:
                last_error = TranslationError(
                    f"Translation request timed out after {self.timeout}s: {e}", timeout=True
                )
            except requests.exceptions.ConnectionError as e:
                last_error = TranslationError(f"Connection error: {e}")

            if attempt < self.max_retries:
                delay = self._backoff_delay(attempt)
                logger.warning(f"Translation call failed (attempt {attempt + 1}/{self.max_retries + 1}): "
                               f"{last_error}")
                logger.info(f"Retrying in {delay:.1f} seconds...")
                time.sleep(delay)

        logger.error(f"Translation failed after {self.max_retries + 1} attempts: {last_error}")
        raise last_error

    def _backoff_delay(self, attempt: int) -> float:
        return min(self.base_delay * (2 ** attempt), self.max_delay)

    def parse_response(self, raw_text: str) -> TranslationResult:
        """
        Extract the candidate source from a generateContent response body.

        Every step fails fast with a TranslationError naming what was
        missing, rather than defaulting to an empty object.
        """
        try:
            envelope = json.loads(raw_text)
        except ValueError as e:
            raise TranslationError(f"Response body is not JSON: {e}") from e

        text_content = self._extract_text(envelope)

        try:
            inner = json.loads(text_content)
        except ValueError as e:
            raise TranslationError(f"Model output is not JSON: {e}") from e

        try:
            jsonschema.validate(instance=inner, schema=self.schema)
        except jsonschema.ValidationError as e:
            raise TranslationError(f"Model output violates schema: {e.message}") from e

        code = inner[self.code_field]
        if self.config["base64"]:
            code = self._decode_base64(code)

        code = self._strip_code_fences(code)
        if not code.strip():
            raise TranslationError(f"Field '{self.code_field}' is empty")

        return TranslationResult(
            candidate_source=code,
            raw_transcript=raw_text,
            notes=inner.get("notes"),
            model=self.config["model"],
        )

    @staticmethod
    def _extract_text(envelope) -> str:
        """Pull the first non-thought text part out of candidates[0]"""
        if not isinstance(envelope, dict):
            raise TranslationError("Response body is not a JSON object")

        candidates = envelope.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            raise TranslationError("Response has no 'candidates'")

        content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list) or not parts:
            raise TranslationError("Response candidate has no 'content.parts'")

        # With thinking enabled, thought summaries come first and are flagged
        for part in parts:
            if isinstance(part, dict) and not part.get("thought") and isinstance(part.get("text"), str):
                return part["text"]

        raise TranslationError("Response candidate has no text part")

    def _decode_base64(self, encoded: str) -> str:
        try:
            return base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
        except (binascii.Error, ValueError) as e:
            raise TranslationError(f"Field '{self.code_field}' is not valid base64 UTF-8: {e}") from e

    @staticmethod
    def _strip_code_fences(code: str) -> str:
        cleaned = code.strip()
        if cleaned.startswith("```"):
            cleaned = re.sub(r"^```[a-zA-Z0-9_\-]*\n", "", cleaned)
            cleaned = re.sub(r"\n?```$", "", cleaned)
        return cleaned

    def _generate_mock_translation(self, source_kind: SourceKind) -> TranslationResult:
        """Deterministic candidate that honours the fixture contract"""
        code = MOCK_CANDIDATE
        field_value = code
        if self.config["base64"]:
            field_value = base64.b64encode(code.encode("utf-8")).decode("ascii")
        body = {self.code_field: field_value, "notes": f"mock translation of {source_kind.label} source"}
        raw = json.dumps({
            "candidates": [{"content": {"parts": [{"text": json.dumps(body)}], "role": "model"}}],
            "modelVersion": "mock",
        })
        return TranslationResult(
            candidate_source=code,
            raw_transcript=raw,
            notes=body["notes"],
            model="mock",
        )


MOCK_CANDIDATE = """use rust_decimal::Decimal;
use rust_decimal_macros::dec;
use std::fs;
use std::str::FromStr;

fn main() {
    let input = fs::read_to_string("input.txt").unwrap();
    let principal = Decimal::from_str(input.trim()).unwrap();
    let total_interest = principal * dec!(0.055);
    let result = format!("CALCULATED INTEREST: {:.2}", total_interest);
    fs::write("output.txt", format!("{}\\n", result)).unwrap();
    println!("{}", result);
}
"""


def get_translator(model_id: str = None, mock_mode: bool = False) -> TranslationClient:
    """
    Get a translation client for a configured model.

    Args:
        model_id: Model identifier from TRANSLATION_MODELS (default model if None)
        mock_mode: If True, returns a fixed candidate when no API key is set
    """
    return TranslationClient(model_id, mock_mode=mock_mode)
