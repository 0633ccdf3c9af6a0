"""Schemas for text-completion endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ExampleSentenceRequest(BaseModel):
    """Word to build an example sentence for."""

    word: str = Field(..., min_length=1, max_length=64)
    meaning: str = Field(default="", max_length=200)


class ExampleSentenceResponse(BaseModel):
    """Generated example sentence with its Turkish translation."""

    en: str = ""
    tr: str = ""
    note_tr: str = ""
