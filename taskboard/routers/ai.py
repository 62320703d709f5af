from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse

from taskboard.ai.providers import get_ai_provider
from taskboard.config import settings
from taskboard.deps import client_ip, get_optional_user
from taskboard.drafts import draft_from_text, fallback_draft
from taskboard.models import User
from taskboard.routers.auth import rate_limit_or_429
from taskboard.schemas import AIDraftTaskOut, AIGenerateIn, AIGenerateOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/generate", response_model=AIGenerateOut)
async def generate_task(payload: AIGenerateIn, request: Request, user: User | None = Depends(get_optional_user)):
  if settings.ai_generate_requires_auth and user is None:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
  prompt = (payload.prompt or "").strip()
  if not prompt:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Prompt is required")
  ip = client_ip(request) or "unknown"
  rate_limit_or_429(key=f"ai:generate:ip:{ip}", limit=int(settings.rate_limit_ai_generate_ip_per_minute), window_seconds=60)

  try:
    provider = get_ai_provider()
    raw = await provider.generate(prompt=prompt, context={"kind": "draft", "topic": prompt})
  except Exception as exc:
    logger.warning("ai generate failed: %s", exc)
    raw = ""
  if not (raw or "").strip():
    fallback = fallback_draft(prompt)
    return JSONResponse(
      status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
      content={"success": False, "message": "AI generation failed", "task": fallback.to_wire()},
    )

  draft = draft_from_text(raw, prompt=prompt)
  logger.info("ai draft generated title=%r subtasks=%d", draft.title, len(draft.subtasks))
  return AIGenerateOut(success=True, result=raw, task=AIDraftTaskOut.model_validate(draft.to_wire()))
