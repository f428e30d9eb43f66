import logging
from typing import Any, Dict

from ..errors import LocalizedError
from ..jobs import register_handler
from ..reader.handler import FeedHandler
from ..storage import Storage


def handle_feed_refresh(*, job_id: str, owner_user_id: str | None, payload: dict) -> Dict[str, Any]:
    # Expected payload: {"feed_id": str}
    feed_id = (payload or {}).get("feed_id")
    if not feed_id:
        raise ValueError("feed_id is required")
    if not owner_user_id:
        raise ValueError("owner_user_id is required")

    handler = FeedHandler(Storage())
    try:
        feed = handler.refresh_feed(owner_user_id, str(feed_id))
    except LocalizedError as exc:
        # The failure is already recorded on the feed; the next scheduled
        # refresh is the retry.
        logging.warning("[job:%s] Refresh of feed %s failed: %s", job_id, feed_id, exc)
        return {"feed_id": feed_id, "status": "error", "code": exc.code, "message": str(exc)}

    logging.info("[job:%s] Refreshed feed %s", job_id, feed_id)
    return {
        "feed_id": feed.id,
        "status": "ok",
        "parsing_error_count": feed.parsing_error_count,
    }


register_handler("feed_refresh", handle_feed_refresh)
