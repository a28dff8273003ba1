"""Translate transcripts with an Azure OpenAI chat deployment."""

from __future__ import annotations

import httpx
from openai import AsyncAzureOpenAI

from app import logging_utils as logging_utils_module
from app import metrics as metrics_module
from app.config import TranslatorSettings
from app.errors import TranslationError

LANGUAGE_NAMES = {
    "ko": "Korean",
    "en": "English",
    "ja": "Japanese",
    "zh-CN": "Chinese",
    "fr-FR": "French",
    "hi-IN": "Hindi",
}

PROMPT_TEMPLATE = """You are a professional translator. Translate the following text from {source} to {target}.

Rules:
- Only return the translated text
- Do not add any explanations, comments, or formatting
- Preserve the meaning and tone
- If the text is already in {target}, return it as is

Text to translate:
{text}

Translated text:"""


def _get_client(
    settings: TranslatorSettings, http_client: httpx.AsyncClient | None = None
) -> AsyncAzureOpenAI:
    # Exactly one request per translation, no client-side timeout.
    return AsyncAzureOpenAI(
        api_key=settings.key,
        azure_endpoint=settings.endpoint,
        api_version=settings.api_version,
        max_retries=0,
        timeout=None,
        http_client=http_client,
    )


def language_name(tag: str) -> str:
    return LANGUAGE_NAMES.get(tag, tag)


def build_prompt(text: str, source_language: str, target_language: str) -> str:
    return PROMPT_TEMPLATE.format(
        source=language_name(source_language),
        target=language_name(target_language),
        text=text,
    )


async def translate(
    text: str,
    source_language: str,
    target_language: str,
    settings: TranslatorSettings,
) -> str:
    """
    Translate text between language tags. Identical tags skip the call and
    return the text unchanged. Failures raise TranslationError (no retry).
    """
    if source_language == target_language:
        logging_utils_module.log_event("translation_skipped", language=source_language)
        metrics_module.record_stage("translation", "skipped")
        return text

    client = _get_client(settings)
    try:
        resp = await client.chat.completions.create(
            model=settings.deployment,
            messages=[
                {"role": "user", "content": build_prompt(text, source_language, target_language)}
            ],
        )
    except Exception as e:
        metrics_module.record_stage("translation", "failed")
        raise TranslationError(f"Translation failed: {e}") from e

    content = None
    if resp.choices:
        content = resp.choices[0].message.content
    translated = (content or "").strip()
    if not translated:
        metrics_module.record_stage("translation", "failed")
        raise TranslationError("Translation failed: No translation result received")
    logging_utils_module.log_event(
        "translated", source=source_language, target=target_language, chars=len(translated)
    )
    metrics_module.record_stage("translation", "translated")
    return translated
