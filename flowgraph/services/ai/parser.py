"""Parsing of language model replies into candidate workflows."""
from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional, Union

import pydantic
from pydantic import BaseModel, Field

_CODE_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


class GeneratedNode(BaseModel):
    id: str
    type: str
    label: str = ""
    config: Dict[str, Any] = Field(default_factory=dict)


class GeneratedEdge(BaseModel):
    source: str
    target: str
    sourceHandle: Optional[str] = None


class GeneratedWorkflow(BaseModel):
    """Raw workflow shape the model is instructed to return."""
    name: str
    description: Optional[str] = None
    nodes: List[GeneratedNode]
    edges: List[GeneratedEdge]


class ParseFailure(BaseModel):
    """Reply that did not contain a usable workflow; shown back to the user."""
    raw: str
    error: str


def strip_code_fences(text: str) -> str:
    match = _CODE_FENCE.search(text)
    return match.group(1).strip() if match else text.strip()


def first_json_object(text: str) -> Optional[str]:
    """
    Return the first balanced ``{...}`` block in ``text``.

    Braces inside JSON string literals are ignored.
    """
    start = text.find("{")
    if start == -1:
        return None
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]
    return None


def parse_workflow_response(text: str) -> Union[GeneratedWorkflow, ParseFailure]:
    """Extract a workflow from a model reply, or describe why it could not."""
    candidate = first_json_object(strip_code_fences(text or ""))
    if candidate is None:
        return ParseFailure(raw=text, error="Could not parse workflow. Please refine your description.")
    try:
        payload = json.loads(candidate)
    except json.JSONDecodeError as exc:
        return ParseFailure(raw=text, error=f"Could not parse workflow JSON: {exc.msg}")
    try:
        return GeneratedWorkflow.model_validate(payload)
    except pydantic.ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        return ParseFailure(raw=text, error=f"Workflow is missing or has an invalid '{location}'")
