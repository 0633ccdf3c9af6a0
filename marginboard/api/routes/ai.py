"""Example-sentence generation backed by the rotating completion client."""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends

from marginboard.schemas.ai import ExampleSentenceRequest, ExampleSentenceResponse
from marginboard.schemas.common import ErrorResponse
from marginboard.services.completion import CredentialRotatingClient

from ..dependencies import get_completion_client


router = APIRouter()


def build_example_sentence_prompt(word: str, meaning: str) -> str:
    return (
        f"Return ONLY JSON for English word {json.dumps(word, ensure_ascii=False)}"
        f" (Meaning: {json.dumps(meaning, ensure_ascii=False)}). "
        'Format: {"en": "sentence", "tr": "çeviri"}'
    )


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


@router.post(
    "/example-sentence",
    response_model=ExampleSentenceResponse,
    summary="Generate an example sentence",
    responses={
        429: {"model": ErrorResponse, "description": "All completion keys exhausted"},
        503: {"model": ErrorResponse, "description": "No completion keys configured"},
    },
)
async def example_sentence(
    payload: ExampleSentenceRequest,
    client: CredentialRotatingClient = Depends(get_completion_client),
) -> ExampleSentenceResponse:
    result = await client.complete_json(
        build_example_sentence_prompt(payload.word.strip(), payload.meaning.strip())
    )
    return ExampleSentenceResponse(
        en=_text(result.get("en")),
        tr=_text(result.get("tr")),
        note_tr=_text(result.get("note_tr")),
    )
