from fastapi import APIRouter, Depends, Header, Response, status

from ..errors import CategoryNotFoundError, DuplicateFeedError, FeedNotFoundError
from ..models import Feed
from ..reader.handler import FeedHandler
from ..schemas import ErrorFeedsCount, FeedCreate, FeedOut, FeedUpdate, RefreshJobOut
from ..storage import Storage
from ..worker import enqueue_feed_refresh


router = APIRouter(prefix="/v1/feeds", tags=["feeds"])


def get_current_user_id(x_user_id: str = Header(..., alias="X-User-Id")) -> str:
    return x_user_id


def get_storage() -> Storage:
    return Storage()


def get_feed_handler(store: Storage = Depends(get_storage)) -> FeedHandler:
    return FeedHandler(store)


def _feed_to_out(store: Storage, feed: Feed) -> FeedOut:
    out = FeedOut.model_validate(feed)
    out.icon_id = store.feed_icon_id(feed.id)
    return out


def _load_feed(store: Storage, user_id: str, feed_id: str) -> Feed:
    feed = store.feed_by_id(user_id, feed_id)
    if feed is None:
        raise FeedNotFoundError(feed_id)
    return feed


@router.post("", response_model=FeedOut, status_code=201, summary="Subscribe to a feed")
def create_feed(
    body: FeedCreate,
    user_id: str = Depends(get_current_user_id),
    store: Storage = Depends(get_storage),
    handler: FeedHandler = Depends(get_feed_handler),
):
    feed = handler.create_feed(
        user_id,
        body.category_id,
        body.feed_url,
        crawler=body.crawler,
        username=body.username,
        password=body.password,
    )
    return _feed_to_out(store, feed)


@router.get("/errors/count", response_model=ErrorFeedsCount, summary="Count failing feeds")
def count_error_feeds(
    user_id: str = Depends(get_current_user_id),
    store: Storage = Depends(get_storage),
):
    return ErrorFeedsCount(count=store.count_error_feeds(user_id))


@router.get("/{feed_id}", response_model=FeedOut, summary="Get a feed")
def get_feed(
    feed_id: str,
    user_id: str = Depends(get_current_user_id),
    store: Storage = Depends(get_storage),
):
    return _feed_to_out(store, _load_feed(store, user_id, feed_id))


@router.put("/{feed_id}", response_model=FeedOut, summary="Edit a feed")
def update_feed(
    feed_id: str,
    body: FeedUpdate,
    user_id: str = Depends(get_current_user_id),
    store: Storage = Depends(get_storage),
):
    feed = _load_feed(store, user_id, feed_id)
    if not store.category_exists(user_id, body.category_id):
        raise CategoryNotFoundError()
    if body.feed_url != feed.feed_url and store.feed_url_exists(user_id, body.feed_url):
        raise DuplicateFeedError(body.feed_url)
    feed = body.merge(feed)
    return _feed_to_out(store, store.update_feed(feed))


@router.post("/{feed_id}/refresh", response_model=FeedOut, summary="Refresh a feed now")
def refresh_feed(
    feed_id: str,
    user_id: str = Depends(get_current_user_id),
    store: Storage = Depends(get_storage),
    handler: FeedHandler = Depends(get_feed_handler),
):
    return _feed_to_out(store, handler.refresh_feed(user_id, feed_id))


@router.post(
    "/{feed_id}/refresh/jobs",
    response_model=RefreshJobOut,
    status_code=202,
    summary="Queue a background refresh",
)
def queue_feed_refresh(
    feed_id: str,
    user_id: str = Depends(get_current_user_id),
    store: Storage = Depends(get_storage),
):
    feed = _load_feed(store, user_id, feed_id)
    job = enqueue_feed_refresh(user_id, feed.id)
    return RefreshJobOut(job_id=job.id, feed_id=feed.id, status=job.status)


@router.delete("/{feed_id}", status_code=204, summary="Unsubscribe from a feed")
def delete_feed(
    feed_id: str,
    user_id: str = Depends(get_current_user_id),
    store: Storage = Depends(get_storage),
):
    if not store.remove_feed(user_id, feed_id):
        raise FeedNotFoundError(feed_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
