from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from taskboard.drafts import GENERIC_SUBTASKS, Draft, draft_from_text, fallback_draft, normalize_draft, parse_draft_text


@pytest.mark.parametrize(
  "raw",
  [
    "",
    "   \n\t  ",
    "{not json",
    '{"title": 42, "subtasks": "nope"}',
    "[1, 2, 3]",
    "null",
    '{"title": "", "description": "", "subtasks": []}',
    "just some prose without any structure at all",
    '{"title": "Fine", "description": "Ok", "subtasks": ["x"], "due_in_days": 2}',
    "```\n```",
    "[" * 100000,
    '{"a": ' * 50000,
  ],
)
def test_every_input_yields_a_usable_draft(raw: str) -> None:
  d = draft_from_text(raw, prompt="Organise the offsite")
  assert isinstance(d, Draft)
  assert d.title.strip()
  assert d.description.strip()
  assert 1 <= len(d.subtasks) <= 6


def test_usable_even_without_prompt() -> None:
  d = draft_from_text("", prompt="")
  assert d.title == "New task"
  assert d.description
  assert list(d.subtasks) == list(GENERIC_SUBTASKS)


def test_fallback_for_unreachable_service() -> None:
  d = fallback_draft("Plan a birthday party")
  assert "Plan a birthday party" in d.title
  assert "Plan a birthday party" in d.description
  assert len(d.subtasks) == 5
  assert list(d.subtasks) == list(GENERIC_SUBTASKS)


def test_generic_subtasks_cover_the_planning_cycle() -> None:
  words = ["research", "plan", "execute", "review", "finalize"]
  assert len(GENERIC_SUBTASKS) == 5
  for word, subtask in zip(words, GENERIC_SUBTASKS):
    assert word in subtask.lower()


def test_line_heuristics() -> None:
  d = draft_from_text("Title: Ship v2\n- Design\n- Build\n- Test", prompt="release")
  assert d.title == "Ship v2"
  assert d.subtasks == ["Design", "Build", "Test"]


def test_line_heuristics_description_and_star_bullets() -> None:
  fields = parse_draft_text("intro line\nTITLE- Quarterly review\nDescription: Gather the numbers\n* one\n\n*   two\n")
  assert fields == {"title": "Quarterly review", "description": "Gather the numbers", "subtasks": ["one", "two"]}


def test_prose_extracts_nothing() -> None:
  assert parse_draft_text("Sure! Here is a plan for you.") == {}


def test_title_rules() -> None:
  d = normalize_draft({"title": '"Book the venue". Then send invites'}, prompt="p")
  assert d.title == "Book the venue"
  long = normalize_draft({"title": "x" * 200}, prompt="p")
  assert len(long.title) == 80
  empty = normalize_draft({"title": "..."}, prompt="A prompt that is definitely longer than forty characters")
  assert empty.title == "A prompt that is definitely longer than"


def test_desc_alias_and_subtask_shapes() -> None:
  d = normalize_draft(
    {"desc": "From desc", "subtasks": ["a" * 150, {"title": "b"}, {"other": 1}, 7, "  "]},
    prompt="p",
  )
  assert d.description == "From desc"
  assert d.subtasks[0] == "a" * 100 + "..."
  assert d.subtasks[1:] == ["b", "Step 3"]


def test_subtasks_capped_at_six() -> None:
  d = normalize_draft({"subtasks": [str(i) for i in range(10)]}, prompt="p")
  assert d.subtasks == ["0", "1", "2", "3", "4", "5"]


@pytest.mark.parametrize(
  ("value", "expected"),
  [
    (3, 3),
    (2.5, 2.5),
    ("4", 4),
    (0, 0),
    (3650, 3650),
    (-1, None),
    (3651, None),
    (1e12, None),
    ("1e12", None),
    (10**400, None),
    (True, None),
    ("soon", None),
    (float("inf"), None),
    (float("nan"), None),
    (None, None),
  ],
)
def test_due_offset(value: object, expected: object) -> None:
  assert normalize_draft({"due_in_days": value}, prompt="p").due_in_days == expected


def test_due_date_is_fixed_at_acceptance() -> None:
  d = normalize_draft({"due_in_days": 3}, prompt="p")
  accepted = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
  assert d.due_at(accepted) == accepted + timedelta(days=3)
  assert normalize_draft({}, prompt="p").due_at(accepted) is None


def test_wire_shape_defaults() -> None:
  wire = fallback_draft("x").to_wire()
  assert wire["due_in_days"] == 7
  assert wire["priority"] == "medium"
  assert wire["category"] == "Planning"
  assert wire["subtasks"][0] == {"title": GENERIC_SUBTASKS[0]}
