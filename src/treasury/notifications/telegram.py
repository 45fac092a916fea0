# src/treasury/notifications/telegram.py
from __future__ import annotations

import os
import logging
from dataclasses import dataclass
from typing import Optional, List

import requests

from src.treasury.notifications.base import AlertSink

log = logging.getLogger("treasury.notifications.telegram")

TELEGRAM_MAX_LEN = 3900  # safe limit (<4096)


class TelegramDeliveryError(RuntimeError):
    pass


# -------------------------
# models
# -------------------------
@dataclass(frozen=True)
class TelegramTarget:
    name: str
    bot_token: str
    chat_id: str


def _env(name: str) -> str:
    v = os.getenv(name)
    return v.strip() if isinstance(v, str) else ""


# -------------------------
# message split
# -------------------------
def split_long_message(text: str, max_len: int = TELEGRAM_MAX_LEN) -> List[str]:
    """
    Splits text under the Telegram limit.
    Cuts on blank lines first, then on line breaks, then hard.
    """
    s = (text or "").strip()
    if not s:
        return []

    if len(s) <= max_len:
        return [s]

    parts: List[str] = []
    buf = ""

    for chunk in s.split("\n\n"):
        cand = (buf + "\n\n" + chunk).strip() if buf else chunk.strip()
        if len(cand) <= max_len:
            buf = cand
            continue

        if buf:
            parts.append(buf)
            buf = ""

        if len(chunk) <= max_len:
            buf = chunk.strip()
            continue

        line_buf = ""
        for line in chunk.splitlines():
            while len(line) > max_len:
                if line_buf:
                    parts.append(line_buf)
                    line_buf = ""
                parts.append(line[:max_len])
                line = line[max_len:]
            cand2 = (line_buf + "\n" + line).strip() if line_buf else line
            if len(cand2) <= max_len:
                line_buf = cand2
            else:
                parts.append(line_buf)
                line_buf = line
        if line_buf:
            parts.append(line_buf)

    if buf:
        parts.append(buf)

    return [p for p in parts if p.strip()]


# -------------------------
# targets resolving
# -------------------------
def resolve_targets_from_env(
    *,
    include_friends: bool = True,
    max_friends: int = 10,
    fallback_friend_token_to_primary: bool = True,
) -> List[TelegramTarget]:
    """
    MAIN:
      TELEGRAM_BOT_TOKEN
      TELEGRAM_CHAT_ID

    FRIENDS:
      TELEGRAM_FRIEND_BOT_TOKEN_1
      TELEGRAM_FRIEND_CHAT_ID_1
      ...

    An empty FRIEND_BOT_TOKEN_i falls back to TELEGRAM_BOT_TOKEN when
    fallback_friend_token_to_primary=True.
    """
    targets: List[TelegramTarget] = []

    primary_token = _env("TELEGRAM_BOT_TOKEN")
    primary_chat = _env("TELEGRAM_CHAT_ID")

    if primary_token and primary_chat:
        targets.append(TelegramTarget(name="primary", bot_token=primary_token, chat_id=primary_chat))

    if not include_friends:
        return targets

    for i in range(1, max(1, int(max_friends)) + 1):
        chat = _env(f"TELEGRAM_FRIEND_CHAT_ID_{i}")
        token = _env(f"TELEGRAM_FRIEND_BOT_TOKEN_{i}")

        if not chat:
            continue

        if not token and fallback_friend_token_to_primary:
            token = primary_token

        if not token:
            continue

        targets.append(TelegramTarget(name=f"friend_{i}", bot_token=token, chat_id=chat))

    return targets


def resolve_alert_target_from_env() -> Optional[TelegramTarget]:
    """TELEGRAM_ALERT_CHAT_ID (+ optional TELEGRAM_ALERT_BOT_TOKEN) for problem messages."""
    chat = _env("TELEGRAM_ALERT_CHAT_ID")
    token = _env("TELEGRAM_ALERT_BOT_TOKEN") or _env("TELEGRAM_BOT_TOKEN")
    if not chat or not token:
        return None
    return TelegramTarget(name="alerts", bot_token=token, chat_id=chat)


# -------------------------
# send
# -------------------------
def send_telegram_message(
    text: str,
    *,
    target: TelegramTarget,
    silent: bool = False,
    disable_preview: bool = True,
    timeout_sec: float = 15.0,
) -> bool:
    """
    Sends text in as many parts as the length limit needs, stopping at the
    first failed part. False means the message is incomplete, not unsent:
    parts before the failure were already delivered.
    """
    text = (text or "").strip()
    if not text:
        return False

    url = f"https://api.telegram.org/bot{target.bot_token}/sendMessage"

    for part in split_long_message(text):
        payload = {
            "chat_id": target.chat_id,
            "text": part,
            "disable_web_page_preview": bool(disable_preview),
            "disable_notification": bool(silent),
        }
        try:
            r = requests.post(url, json=payload, timeout=timeout_sec)
        except requests.RequestException as e:
            log.warning("Telegram send to %s failed: %s", target.name, e)
            return False
        if r.status_code != 200:
            log.error("Telegram send to %s failed: %s %s", target.name, r.status_code, r.text[:300])
            return False
    return True


def broadcast_telegram_message(text: str, *, targets: List[TelegramTarget], silent: bool = False) -> int:
    """Returns the number of targets that accepted the message."""
    ok = 0
    for t in targets:
        if send_telegram_message(text, target=t, silent=silent):
            ok += 1
    return ok


class TelegramAlertSink(AlertSink):
    """
    urgent=False     -> silent message
    is_problem=True  -> also goes to the alert chat, if configured
    """

    def __init__(self, targets: List[TelegramTarget], alert_target: Optional[TelegramTarget] = None):
        self.targets = list(targets)
        self.alert_target = alert_target

    @classmethod
    def from_env(cls) -> Optional["TelegramAlertSink"]:
        targets = resolve_targets_from_env()
        alert_target = resolve_alert_target_from_env()
        if not targets and alert_target is None:
            log.warning("Telegram target not configured (missing token/chat_id)")
            return None
        return cls(targets, alert_target)

    def send(self, message: str, urgent: bool, is_problem: bool) -> None:
        targets = list(self.targets)
        if is_problem and self.alert_target is not None:
            targets.append(self.alert_target)

        ok = broadcast_telegram_message(message, targets=targets, silent=not urgent)
        if targets and ok == 0:
            raise TelegramDeliveryError(f"no Telegram target accepted the message ({len(targets)} tried)")
