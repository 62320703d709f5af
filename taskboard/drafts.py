"""
Turns text-generation output into a task draft.

Generation services answer with anything from clean JSON to a loose bulleted
note to an error page. `draft_from_text` accepts all of it and always returns
a usable `Draft`: structured fields when the text parses, line heuristics when
it does not, and the prompt-derived fallback when nothing can be extracted.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

TITLE_MAX = 80
PROMPT_TITLE_MAX = 40
SUBTASK_MAX = 100
SUBTASKS_LIMIT = 6
DEFAULT_DUE_IN_DAYS = 7
MAX_DUE_IN_DAYS = 3650
DEFAULT_PRIORITY = "medium"
DEFAULT_CATEGORY = "Planning"

GENERIC_SUBTASKS: tuple[str, ...] = (
  "Research and gather the necessary information",
  "Plan the approach and break down the work",
  "Execute the main task components",
  "Review the results and make improvements",
  "Finalize and complete the task",
)

_FENCE_RE = re.compile(r"^```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?\s*```$", re.DOTALL)
_TITLE_RE = re.compile(r"^title\s*[:\-]\s*", re.IGNORECASE)
_DESCRIPTION_RE = re.compile(r"^desc(?:ription)?\s*[:\-]\s*", re.IGNORECASE)
_BULLET_RE = re.compile(r"^[-*]\s*")
_QUOTES = "\"'`‘’“”"


@dataclass(frozen=True)
class Draft:
  title: str
  description: str
  subtasks: list[str] = field(default_factory=list)
  due_in_days: int | float | None = None
  priority: str = DEFAULT_PRIORITY
  category: str = DEFAULT_CATEGORY

  def due_at(self, accepted_at: datetime) -> datetime | None:
    """The due offset only becomes a date once the user accepts the draft."""
    if self.due_in_days is None:
      return None
    return accepted_at + timedelta(days=self.due_in_days)

  def to_wire(self) -> dict[str, Any]:
    return {
      "title": self.title,
      "description": self.description,
      "subtasks": [{"title": s} for s in self.subtasks],
      "due_in_days": DEFAULT_DUE_IN_DAYS if self.due_in_days is None else self.due_in_days,
      "priority": self.priority,
      "category": self.category,
    }


def _strip_fence(text: str) -> str:
  m = _FENCE_RE.match(text)
  return m.group(1).strip() if m else text


def _parse_lines(text: str) -> dict[str, Any]:
  out: dict[str, Any] = {}
  bullets: list[str] = []
  for raw_line in text.splitlines():
    line = raw_line.strip()
    if not line:
      continue
    if _TITLE_RE.match(line):
      out.setdefault("title", _TITLE_RE.sub("", line, count=1))
    elif _DESCRIPTION_RE.match(line):
      out.setdefault("description", _DESCRIPTION_RE.sub("", line, count=1))
    elif _BULLET_RE.match(line):
      item = _BULLET_RE.sub("", line, count=1).strip()
      if item:
        bullets.append(item)
  if bullets:
    out["subtasks"] = bullets
  return out


def parse_draft_text(raw: str | None) -> dict[str, Any]:
  """
  Extract draft fields from raw generation output.

  Returns an empty dict when nothing could be extracted.
  """
  text = _strip_fence((raw or "").strip())
  if not text:
    return {}
  try:
    data = json.loads(text)
  except (ValueError, RecursionError):
    data = None
  if isinstance(data, dict):
    return data
  return _parse_lines(text)


def _clean_title(value: object, *, prompt: str) -> str:
  title = value if isinstance(value, str) else ""
  title = title.split(".", 1)[0]
  title = "".join(ch for ch in title if ch not in _QUOTES)
  title = title.strip()[:TITLE_MAX].strip()
  if not title:
    title = prompt.strip()[:PROMPT_TITLE_MAX].strip()
  return title or "New task"


def _clean_description(value: object, *, prompt: str) -> str:
  if isinstance(value, str) and value.strip():
    return value.strip()
  subject = prompt.strip() or "this task"
  return f"Comprehensive task plan for: {subject}. This includes detailed steps and requirements for successful completion."


def _clean_subtasks(value: object) -> list[str]:
  if not isinstance(value, (list, tuple)):
    return list(GENERIC_SUBTASKS)
  out: list[str] = []
  for idx, item in enumerate(value):
    if isinstance(item, str):
      title = item.strip()
    elif isinstance(item, dict):
      t = item.get("title")
      title = t.strip() if isinstance(t, str) and t.strip() else f"Step {idx + 1}"
    else:
      continue
    if not title:
      continue
    if len(title) > SUBTASK_MAX:
      title = title[:SUBTASK_MAX] + "..."
    out.append(title)
    if len(out) >= SUBTASKS_LIMIT:
      break
  return out or list(GENERIC_SUBTASKS)


def _clean_due(value: object) -> int | float | None:
  if isinstance(value, bool) or value is None:
    return None
  if isinstance(value, str):
    try:
      value = float(value.strip())
    except ValueError:
      return None
  if not isinstance(value, (int, float)):
    return None
  if not 0 <= value <= MAX_DUE_IN_DAYS:
    return None
  if isinstance(value, float) and value.is_integer():
    return int(value)
  return value


def _clean_label(value: object, default: str) -> str:
  if isinstance(value, str) and value.strip():
    return value.strip()
  return default


def normalize_draft(fields: dict[str, Any] | None, *, prompt: str = "") -> Draft:
  fields = fields or {}
  prompt = prompt or ""
  description = fields.get("description")
  if description is None:
    description = fields.get("desc")
  return Draft(
    title=_clean_title(fields.get("title"), prompt=prompt),
    description=_clean_description(description, prompt=prompt),
    subtasks=_clean_subtasks(fields.get("subtasks")),
    due_in_days=_clean_due(fields.get("due_in_days")),
    priority=_clean_label(fields.get("priority"), DEFAULT_PRIORITY),
    category=_clean_label(fields.get("category"), DEFAULT_CATEGORY),
  )


def fallback_draft(prompt: str) -> Draft:
  return normalize_draft({}, prompt=prompt)


def draft_from_text(raw: str | None, *, prompt: str = "") -> Draft:
  return normalize_draft(parse_draft_text(raw), prompt=prompt)
