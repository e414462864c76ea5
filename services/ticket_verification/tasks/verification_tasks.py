"""Background replay of ticket verifications (offline / batch re-validation)"""
import asyncio
import logging
from datetime import datetime
from typing import Dict, Optional, Union

from celery.signals import worker_process_init, worker_process_shutdown

from services.ticket_verification.services.verification_engine import VerificationEngine
from shared.cache.celery_app import celery_app
from shared.cache.redis_client import RedisCacheStore
from shared.cache.store import CacheStore
from shared.utils.exceptions import StoreUnavailable, VerificationRejected

logger = logging.getLogger(__name__)

# One event loop and one store per worker process, shared by every task run
_worker_loop: Optional[asyncio.AbstractEventLoop] = None
_worker_store: Optional[CacheStore] = None


def get_worker_loop() -> asyncio.AbstractEventLoop:
    global _worker_loop
    if _worker_loop is None or _worker_loop.is_closed():
        _worker_loop = asyncio.new_event_loop()
        asyncio.set_event_loop(_worker_loop)
    return _worker_loop


def run_async(coro):
    """Run a coroutine from Celery's synchronous task context on the process loop"""
    return get_worker_loop().run_until_complete(coro)


def build_store() -> CacheStore:
    return RedisCacheStore()


def get_worker_store() -> CacheStore:
    """
    Return the store of this worker process, connecting it on first use.

    The pool stays bound to the process loop, so it is reused across jobs
    and only closed when the worker process shuts down.
    """
    global _worker_store
    if _worker_store is None:
        store = build_store()
        run_async(store.connect())
        _worker_store = store
        logger.info("[CELERY] Worker store connected")
    return _worker_store


@worker_process_init.connect
def init_worker_store(**kwargs):
    get_worker_store()


@worker_process_shutdown.connect
def close_worker_store(**kwargs):
    global _worker_loop, _worker_store
    if _worker_store is not None:
        run_async(_worker_store.close())
        _worker_store = None
        logger.info("[CELERY] Worker store closed")
    if _worker_loop is not None:
        _worker_loop.close()
        _worker_loop = None


async def _verify(store: CacheStore, token: str, device_key: str, scan_time: datetime) -> Dict:
    engine = VerificationEngine(store)
    try:
        record = await engine.verify(token, device_key, scan_time)
    except VerificationRejected as e:
        return {"admitted": False, **e.to_dict()}
    return {"admitted": True, "ticket_id": record.ticket_id, "ticket": record.model_dump(mode="json")}


@celery_app.task(
    name="verify_ticket",
    bind=True,
    autoretry_for=(StoreUnavailable,),
    retry_backoff=True,
    retry_backoff_max=60,
    retry_kwargs={"max_retries": 3},
)
def verify_ticket_task(self, token: str, device_key: str, scan_time: str):
    """
    Replay a verification through the engine and log the decision

    Rejections are final and are not retried; store outages are retried
    with exponential backoff.
    """
    logger.info(f"[CELERY] Processing verification job {self.request.id} from device {device_key}")

    store = get_worker_store()
    result = run_async(_verify(store, token, device_key, datetime.fromisoformat(scan_time)))

    if result["admitted"]:
        logger.info(f"[CELERY] Job {self.request.id}: ticket {result['ticket_id']} admitted")
    else:
        logger.warning(f"[CELERY] Job {self.request.id}: rejected [{result['kind']}] {result['message']}")

    return result


def enqueue_verification(
    token: str,
    device_key: str,
    scan_time: Union[datetime, str],
    countdown: Optional[int] = None,
) -> str:
    """Queue a verification and return the task id (correlation id)"""
    if isinstance(scan_time, datetime):
        scan_time = scan_time.isoformat()

    result = verify_ticket_task.apply_async(
        kwargs={"token": token, "device_key": device_key, "scan_time": scan_time},
        countdown=countdown,
    )
    logger.info(f"Verification job {result.id} queued for device {device_key}")
    return result.id
