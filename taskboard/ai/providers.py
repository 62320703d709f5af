from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from taskboard.config import settings

SYSTEM_PROMPT = (
  "You are an expert project manager and task planner. "
  "Always return detailed, structured and actionable task plans. "
  "Return ONLY valid JSON, no other text."
)


def draft_request_prompt(prompt: str) -> str:
  return (
    f'Create a well-structured task plan based on: "{prompt}"\n\n'
    "Return a JSON object with this structure:\n"
    '{"title": "short task title (max 6-8 words)", '
    '"description": "what the task is for and what done looks like (3-4 sentences)", '
    '"subtasks": ["specific actionable step", "..."], '
    '"due_in_days": 7, "priority": "low|medium|high", "category": "task category"}\n\n'
    "Keep the title short, the subtasks sequential and achievable, and due_in_days between 3 and 14."
  )


class AIProvider(Protocol):
  async def generate(self, *, prompt: str, context: dict[str, Any]) -> str: ...


@dataclass
class LocalDeterministicProvider:
  async def generate(self, *, prompt: str, context: dict[str, Any]) -> str:
    # Offline and repeatable; answers the draft request with JSON.
    kind = context.get("kind", "draft")
    topic = " ".join((context.get("topic") or prompt).split())
    if kind != "draft":
      return json.dumps({"echo": prompt, "context": context}, indent=2)
    words = topic.split()
    title = " ".join(words[:8]) if words else "New task"
    return json.dumps(
      {
        "title": title[:1].upper() + title[1:],
        "description": f"Plan and deliver: {topic}. Agree on scope first, then work through the steps and confirm the outcome.",
        "subtasks": [
          f"Clarify the goal and scope of {topic}",
          "List the resources and people involved",
          "Draft a schedule with milestones",
          "Carry out the planned work",
          "Review the outcome and close out",
        ],
        "due_in_days": 7,
        "priority": "medium",
        "category": "Planning",
      }
    )


@dataclass
class OpenAICompatibleProvider:
  api_key: str
  base_url: str
  model: str = "gpt-4o-mini"
  timeout: float = 10.0
  transport: httpx.AsyncBaseTransport | None = None

  async def generate(self, *, prompt: str, context: dict[str, Any]) -> str:
    headers = {"Authorization": f"Bearer {self.api_key}"}
    async with httpx.AsyncClient(base_url=self.base_url, headers=headers, timeout=self.timeout, transport=self.transport) as client:
      r = await client.post(
        "/chat/completions",
        json={
          "model": self.model,
          "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": draft_request_prompt(prompt)},
          ],
          "max_tokens": 500,
          "temperature": 0.7,
        },
      )
      r.raise_for_status()
      data = r.json()
      return (data["choices"][0]["message"]["content"] or "").strip()


def get_ai_provider() -> AIProvider:
  if settings.ai_provider.lower() == "openai":
    if not settings.openai_api_key:
      raise RuntimeError("AI_PROVIDER=openai requires OPENAI_API_KEY")
    return OpenAICompatibleProvider(
      api_key=settings.openai_api_key,
      base_url=settings.openai_base_url,
      model=settings.ai_model,
      timeout=settings.ai_timeout_seconds,
    )
  return LocalDeterministicProvider()
