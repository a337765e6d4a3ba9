import re
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

MAX_LLM_ATTEMPTS = 2  # Initial attempt + 1 retry
REQUEST_TIMEOUT = 300
TEMPERATURE = 0.3

JSON_MARKDOWN_REGEX = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")


class TranslationError(Exception):
    """A translation unit failed; nothing from it may be written."""


@dataclass
class TranslatedContent:
    fields: Dict[str, str] = field(default_factory=dict)
    content: str = ""


class LLMService:
    def __init__(self, api_key: Optional[str], endpoint_url: str, model: str, session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.endpoint_url = endpoint_url
        self.model = model
        self.session = session or requests.Session()
        if not self.api_key:
            logging.warning("LLM_SERVICE: API Key not provided. LLM calls will fail.")

    def _make_request(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        if not self.api_key or not self.endpoint_url:
            raise TranslationError("API key or endpoint URL is missing. Cannot make request.")

        headers = {"Content-Type": "application/json", "Authorization": f"Bearer {self.api_key}"}
        payload: Dict[str, Any] = {"model": self.model, "messages": messages, "temperature": TEMPERATURE}

        logging.debug(f"LLM_SERVICE: Sending request to {self.endpoint_url} with model {self.model}.")
        try:
            response = self.session.post(self.endpoint_url, json=payload, headers=headers, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            if getattr(e, "response", None) is not None:
                logging.error(f"LLM_SERVICE: Response status: {e.response.status_code}, content: {e.response.text}")
            raise TranslationError(f"API call to {self.endpoint_url} (model {self.model}) failed: {e}") from e
        except ValueError as e:
            raise TranslationError(f"API response from {self.endpoint_url} is not JSON: {e}") from e

    def get_chat_completion_content(self, messages: List[Dict[str, str]]) -> str:
        api_response = self._make_request(messages)
        try:
            content = api_response["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise TranslationError(f"Failed to parse LLM response structure (model {self.model}): {e}") from e
        logging.debug(f"LLM_SERVICE: Raw content from model {self.model}: {str(content)[:500]}...")
        return content or ""

    def translate_document(
        self,
        source_locale: str,
        target_locale: str,
        fields: Dict[str, str],
        content: str,
        prompt: Optional[str] = None,
    ) -> TranslatedContent:
        messages = [
            {"role": "system", "content": prompt or build_system_prompt(source_locale, target_locale)},
            {"role": "user", "content": build_user_prompt(fields, content)},
        ]
        last_error: Optional[TranslationError] = None
        for attempt_num in range(1, MAX_LLM_ATTEMPTS + 1):
            logging.info(f"LLM_SERVICE: Translate attempt {attempt_num}/{MAX_LLM_ATTEMPTS}, {source_locale} -> {target_locale}, model {self.model}.")
            try:
                return parse_translation_response(self.get_chat_completion_content(messages), fields)
            except TranslationError as e:
                last_error = e
                if attempt_num < MAX_LLM_ATTEMPTS:
                    logging.warning(f"LLM_SERVICE: Translate attempt {attempt_num} ({target_locale}) failed: {e}. Retrying.")
        logging.error(f"LLM_SERVICE: Translate to {target_locale} failed after {MAX_LLM_ATTEMPTS} attempts.")
        raise TranslationError(str(last_error)) from last_error


def build_system_prompt(source_locale: str, target_locale: str) -> str:
    return f"""You are a professional translator. Translate from {source_locale} to {target_locale}.

Rules:
- Translate all text naturally and fluently
- Keep markdown formatting exactly as-is
- Keep code blocks, URLs, and component tags unchanged
- Do not translate import statements, component names, or anything inside angle brackets (< >) or backticks (` `)

Please provide your response as a single JSON object with two keys:
{{"fields": {{"<field name>": "translated value"}}, "content": "translated markdown"}}

"fields" must contain exactly the field names you were given. Ensure your output is only the JSON object, with no preceding or succeeding text."""


def build_user_prompt(fields: Dict[str, str], content: str) -> str:
    return json.dumps({"fields": fields, "content": content}, indent=2, ensure_ascii=False)


def parse_translation_response(response: str, original_fields: Dict[str, str]) -> TranslatedContent:
    match = JSON_MARKDOWN_REGEX.search(response)
    json_str = match.group(1) if match else response.strip()
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as jde:
        raise TranslationError(f"Failed to decode JSON from content. Error: {jde}. Content sample: {json_str[:200]}") from jde

    if not isinstance(data, dict) or not isinstance(data.get("content"), str):
        raise TranslationError("Response JSON has no 'content' string.")

    translated_fields: Dict[str, str] = {}
    raw_fields = data.get("fields") or {}
    if isinstance(raw_fields, dict):
        for key, value in raw_fields.items():
            if key in original_fields and isinstance(value, str) and value.strip():
                translated_fields[key] = value.strip()
    return TranslatedContent(fields=translated_fields, content=data["content"].strip())
