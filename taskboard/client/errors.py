from __future__ import annotations

from typing import Any


class GatewayError(RuntimeError):
  def __init__(self, message: str, *, status_code: int | None = None, details: Any = None) -> None:
    super().__init__(message)
    self.message = message
    self.status_code = status_code
    self.details = details


class ValidationError(GatewayError):
  """Missing or malformed input; rejected locally or with a 400."""


class NotFoundError(GatewayError):
  """Unknown id, or a record owned by someone else."""


class SessionExpiredError(GatewayError):
  """401 from the gateway; the user has to sign in again."""


class TransientError(GatewayError):
  """Timeouts, unreachable hosts and 5xx responses."""
