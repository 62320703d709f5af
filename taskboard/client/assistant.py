"""
AI-assisted task drafting on the client.

Draft providers are tried in order. Each answers with a normalized `Draft`
or `NO_DRAFT`; the last provider is static and always answers, so a prompt
always produces something the user can edit.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

import httpx

from taskboard.ai.providers import AIProvider, OpenAICompatibleProvider
from taskboard.client.errors import GatewayError, ValidationError
from taskboard.client.gateway import GatewayClient
from taskboard.client.notifications import NotificationLog, Notifier
from taskboard.client.settings import ClientSettings
from taskboard.drafts import Draft, draft_from_text, fallback_draft, normalize_draft

logger = logging.getLogger(__name__)

UNREACHABLE_NOTICE = "Could not reach the assistant"


class Outcome(enum.Enum):
  NO_DRAFT = "no_draft"


NO_DRAFT = Outcome.NO_DRAFT


class DraftProvider(Protocol):
  name: str
  remote: bool

  async def draft(self, prompt: str) -> Draft | Outcome: ...


@dataclass
class GatewayDraftProvider:
  gateway: GatewayClient
  name: str = "gateway"
  remote: bool = True

  async def draft(self, prompt: str) -> Draft | Outcome:
    try:
      data = await self.gateway.generate_draft(prompt)
    except GatewayError as exc:
      logger.info("gateway draft unavailable: %s", exc)
      return NO_DRAFT
    task = data.get("task") if isinstance(data, dict) else None
    if not (isinstance(data, dict) and data.get("success") and isinstance(task, dict)):
      return NO_DRAFT
    return normalize_draft(task, prompt=prompt)


@dataclass
class InferenceDraftProvider:
  provider: AIProvider
  name: str = "inference"
  remote: bool = True

  async def draft(self, prompt: str) -> Draft | Outcome:
    try:
      raw = await self.provider.generate(prompt=prompt, context={"kind": "draft", "topic": prompt})
    except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as exc:
      logger.info("inference draft unavailable: %s", exc)
      return NO_DRAFT
    if not (raw or "").strip():
      return NO_DRAFT
    return draft_from_text(raw, prompt=prompt)


@dataclass
class StaticDraftProvider:
  name: str = "static"
  remote: bool = False

  async def draft(self, prompt: str) -> Draft | Outcome:
    return fallback_draft(prompt)


@dataclass(frozen=True)
class DraftResult:
  draft: Draft
  source: str
  notice: str | None = None


@dataclass
class DraftAssistant:
  providers: list[DraftProvider]
  notifier: Notifier = field(default_factory=NotificationLog)

  @classmethod
  def from_settings(
    cls, settings: ClientSettings, gateway: GatewayClient, *, notifier: Notifier | None = None
  ) -> DraftAssistant:
    providers: list[DraftProvider] = [GatewayDraftProvider(gateway)]
    if settings.inference_base_url and settings.inference_api_key:
      providers.append(
        InferenceDraftProvider(
          OpenAICompatibleProvider(
            api_key=settings.inference_api_key,
            base_url=settings.inference_base_url,
            model=settings.inference_model,
            timeout=settings.request_timeout_seconds,
          )
        )
      )
    providers.append(StaticDraftProvider())
    return cls(providers=providers, notifier=notifier or NotificationLog())

  async def draft(self, prompt: str) -> DraftResult:
    prompt = (prompt or "").strip()
    if not prompt:
      raise ValidationError("Prompt is required")
    remote_tried = False
    for provider in self.providers:
      outcome = await provider.draft(prompt)
      if outcome is NO_DRAFT:
        remote_tried = remote_tried or provider.remote
        continue
      if remote_tried and not provider.remote:
        self.notifier.notify("warning", UNREACHABLE_NOTICE)
        return DraftResult(outcome, provider.name, UNREACHABLE_NOTICE)
      return DraftResult(outcome, provider.name)
    self.notifier.notify("warning", UNREACHABLE_NOTICE)
    return DraftResult(fallback_draft(prompt), "static", UNREACHABLE_NOTICE)


def task_fields_from_draft(draft: Draft, *, accepted_at: datetime | None = None) -> dict[str, Any]:
  """Fields for `TaskListReducer.add_task`; the due date is fixed at acceptance."""
  accepted_at = accepted_at or datetime.now(timezone.utc)
  fields: dict[str, Any] = {
    "title": draft.title,
    "description": draft.description,
    "subtasks": list(draft.subtasks),
  }
  due = draft.due_at(accepted_at)
  if due is not None:
    fields["due_date"] = due
  return fields
