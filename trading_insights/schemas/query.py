"""Request and response models for SQL assembly and text-to-SQL."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AssembleRequest(BaseModel):
    query: str
    execute: bool = False


class AssembleResponse(BaseModel):
    sql: str
    explanation: str
    join_path: List[str]
    intent: Dict[str, Any]
    follow_up_questions: List[str] = Field(default_factory=list)
    results: Optional[List[Dict[str, Any]]] = None


class TextQueryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: str
    context: Optional[Dict[str, Any]] = None
    follow_up: bool = Field(default=False, alias="followUp")


class TextQueryResponse(BaseModel):
    """Text-to-SQL result; ``error`` is set when no LLM key is configured."""

    sql: str = ""
    results: List[Dict[str, Any]] = Field(default_factory=list)
    insights: List[str] = Field(default_factory=list)
    explanation: str = ""
    ambiguities: List[Dict[str, Any]] = Field(default_factory=list)
    follow_up_questions: List[str] = Field(default_factory=list)
    clarification_needed: bool = False
    suggestions: List[str] = Field(default_factory=list)
    examples: List[str] = Field(default_factory=list)
    error: Optional[str] = None
