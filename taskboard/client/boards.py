from __future__ import annotations

import logging

from taskboard.client.errors import GatewayError, ValidationError
from taskboard.client.gateway import GatewayClient
from taskboard.client.notifications import NotificationLog, Notifier
from taskboard.client.preferences import ClientPreferences
from taskboard.client.records import BUILTIN_STATUSES, BoardRecord
from taskboard.client.reducer import TaskListReducer

logger = logging.getLogger(__name__)


class BoardList:
  """Active and archived boards of the signed-in user."""

  def __init__(
    self,
    gateway: GatewayClient,
    *,
    reducer: TaskListReducer | None = None,
    preferences: ClientPreferences | None = None,
    notifier: Notifier | None = None,
  ) -> None:
    self.gateway = gateway
    self.reducer = reducer
    self.preferences = preferences
    self.notifier = notifier or (reducer.notifier if reducer else NotificationLog())
    self.boards: list[BoardRecord] = []

  @property
  def active(self) -> list[BoardRecord]:
    return [b for b in self.boards if not b.archived]

  @property
  def archived(self) -> list[BoardRecord]:
    return [b for b in self.boards if b.archived]

  def _replace(self, board: BoardRecord) -> None:
    for idx, b in enumerate(self.boards):
      if b.id == board.id:
        self.boards[idx] = board
        return
    self.boards.insert(0, board)

  def _failed(self, action: str, exc: GatewayError) -> None:
    logger.warning("board %s failed: %s", action, exc)
    self.notifier.notify("error", f"Failed to {action} board")

  async def load(self) -> bool:
    try:
      self.boards = await self.gateway.list_boards()
    except GatewayError as exc:
      self._failed("load", exc)
      return False
    if self.reducer and self.preferences:
      for b in self.boards:
        self.reducer.set_custom_statuses(b.id, self.preferences.board(b.id).status_names())
    return True

  async def create(self, name: str) -> BoardRecord | None:
    name = (name or "").strip()
    if not name:
      raise ValidationError("Board name is required")
    try:
      board = await self.gateway.create_board(name)
    except GatewayError as exc:
      self._failed("create", exc)
      return None
    self._replace(board)
    return board

  async def archive(self, board_id: str) -> BoardRecord | None:
    try:
      board = await self.gateway.archive_board(board_id)
    except GatewayError as exc:
      self._failed("archive", exc)
      return None
    self._replace(board)
    return board

  async def restore(self, board_id: str) -> BoardRecord | None:
    try:
      board = await self.gateway.restore_board(board_id)
    except GatewayError as exc:
      self._failed("restore", exc)
      return None
    self._replace(board)
    return board

  async def delete(self, board_id: str) -> bool:
    try:
      await self.gateway.delete_board(board_id)
    except GatewayError as exc:
      self._failed("delete", exc)
      return False
    self.boards = [b for b in self.boards if b.id != board_id]
    if self.reducer:
      self.reducer.forget_board(board_id)
    if self.preferences:
      self.preferences.boards.pop(board_id, None)
    return True

  async def delete_custom_column(self, board_id: str, name: str) -> int | None:
    """
    Removes a custom status column and every task in it.

    Built-in columns are refused locally without calling the gateway.
    """
    name = (name or "").strip()
    if not name or name.lower() in BUILTIN_STATUSES:
      raise ValidationError(f"'{name}' is a built-in column and cannot be deleted")
    try:
      deleted = await self.gateway.delete_custom_column(board_id, name)
    except GatewayError as exc:
      logger.warning("deleting column %s on board %s failed: %s", name, board_id, exc)
      self.notifier.notify("error", "Failed to delete column")
      return None
    if self.preferences:
      self.preferences.board(board_id).remove_status(name)
    if self.reducer:
      self.reducer.drop_column(board_id, name)
    return deleted
