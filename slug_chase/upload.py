"""Upload finished runs to Strava as activities.

Uses only the standard library HTTP client. Failures are reported as UploadError
and never feed back into a session.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any

from slug_chase.models import SessionOutcome

logger = logging.getLogger(__name__)


class UploadError(RuntimeError):
    """Upload rejected by the API or not delivered at all."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message if status is None else f"HTTP {status}: {message}")
        self.status = status
        self.message = message


@dataclass(frozen=True, slots=True)
class StravaConfig:
    """Configuration for the Strava v3 API."""

    access_token: str
    base_url: str = "https://www.strava.com/api/v3"
    timeout_seconds: float = 20.0
    user_agent: str = "slug-chase/0.1.0"


@dataclass(frozen=True, slots=True)
class ActivityRecord:
    """Payload of POST /activities (field names as the API expects them)."""

    name: str
    type: str
    start_date_local: str
    elapsed_time: int
    distance: float
    description: str = ""


def activity_from_outcome(
    outcome: SessionOutcome,
    started_at: datetime,
    *,
    name: str = "Slug Chase",
    activity_type: str = "Run",
) -> ActivityRecord:
    """Build an activity record for a finished session."""

    ending = "被蛞蝓抓到" if outcome.captured else "成功逃脱"
    return ActivityRecord(
        name=name,
        type=activity_type,
        start_date_local=started_at.replace(tzinfo=None).isoformat(timespec="seconds"),
        elapsed_time=int(round(outcome.duration_seconds)),
        distance=round(outcome.distance_traveled_m, 1),
        description=f"{ending}，获得 {outcome.coins_earned} 枚金币",
    )


def _error_message(body: str, fallback: str) -> str:
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        return fallback
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return fallback


def upload_activity(record: ActivityRecord, cfg: StravaConfig) -> dict[str, Any]:
    """POST one activity.

    Returns:
        The created activity as returned by the API.

    Raises:
        UploadError: On HTTP errors, network errors or an unreadable response.
    """

    if not cfg.access_token:
        raise UploadError("缺少 Strava access token")

    req = urllib.request.Request(
        f"{cfg.base_url.rstrip('/')}/activities",
        data=json.dumps(asdict(record), ensure_ascii=False).encode("utf-8"),
        headers={
            "Authorization": f"Bearer {cfg.access_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": cfg.user_agent,
        },
        method="POST",
    )
    try:
        with urllib.request.urlopen(req, timeout=cfg.timeout_seconds) as resp:  # noqa: S310
            body = resp.read().decode("utf-8", errors="replace")
    except urllib.error.HTTPError as exc:
        body = exc.read().decode("utf-8", errors="replace") if exc.fp is not None else ""
        raise UploadError(_error_message(body, exc.reason or "request failed"), status=exc.code) from exc
    except (urllib.error.URLError, OSError) as exc:
        raise UploadError(f"网络错误：{exc}") from exc

    try:
        created: dict[str, Any] = json.loads(body)
    except json.JSONDecodeError as exc:
        raise UploadError("无法解析 Strava 响应") from exc
    logger.info("已上传 Strava 活动 id=%s", created.get("id"))
    return created
