"""
Event ingestion on the request path.

Both operations persist the raw event before returning. Pageviews then
hand enrichment to the BackgroundTaskRunner and return without waiting on
it; no provider, cache or settings access happens before the response.
Clicks are never enriched.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from errors import ValidationError
from repositories.click_repository import ClickRepository
from repositories.pageview_repository import PageviewRepository
from schemas.models.click import ClickDoc, ItemKind
from schemas.models.pageview import PageviewDoc
from services.enrichment_service import EnrichmentService
from services.task_runner import BackgroundTaskRunner
from shared.ip_utils import hash_ip
from shared.logging import get_logger, should_sample

log = get_logger(__name__)

MAX_PATH_LENGTH = 2048
MAX_USER_AGENT_LENGTH = 512
ITEM_KINDS: tuple[str, ...] = ("bookmark", "service")


class IngestionService:
    def __init__(
        self,
        pageviews: PageviewRepository,
        clicks: ClickRepository,
        enrichment: EnrichmentService,
        runner: BackgroundTaskRunner,
        ip_hash_salt: str,
        tz: str = "UTC",
    ) -> None:
        self._pageviews = pageviews
        self._clicks = clicks
        self._enrichment = enrichment
        self._runner = runner
        self._salt = ip_hash_salt
        self._tz = tz

    async def record_pageview(
        self, path: Optional[str], user_agent: Optional[str], ip: str
    ) -> str:
        """Persist a pageview and schedule its enrichment. Returns the event id.

        Raises:
            ValidationError: *path* is missing or blank.
        """
        if path is None or not path.strip():
            raise ValidationError("Path is required", field="path")

        ip_hash = hash_ip(ip, self._salt)
        doc = PageviewDoc(
            path=path.strip()[:MAX_PATH_LENGTH],
            user_agent=user_agent[:MAX_USER_AGENT_LENGTH] if user_agent else None,
            ip_address=ip,
            ip_hash=ip_hash,
        )
        event_id = await self._pageviews.insert(doc)

        self._runner.submit(
            self._enrichment.run(event_id, ip, ip_hash),
            name=f"enrich:{event_id}",
        )

        if should_sample("pageview_ingested"):
            log.info("pageview_ingested", event_id=event_id, ip_hash=ip_hash, path=doc.path)
        return event_id

    async def record_click(
        self, item_id: str, item_kind: ItemKind, now: Optional[datetime] = None
    ) -> str:
        """Persist a click with its hour/day fields derived in the server timezone.

        Raises:
            ValidationError: blank *item_id* or unknown *item_kind*.
        """
        if not item_id or not str(item_id).strip():
            raise ValidationError("Item id is required", field="item_id")
        if item_kind not in ITEM_KINDS:
            raise ValidationError(
                f"item_kind must be one of: {', '.join(ITEM_KINDS)}", field="item_kind"
            )

        doc = ClickDoc.create(
            item_id=str(item_id).strip(),
            item_kind=item_kind,
            clicked_at=now or datetime.now(timezone.utc),
            tz=self._tz,
        )
        click_id = await self._clicks.insert(doc)

        if should_sample("click_ingested"):
            log.info(
                "click_ingested",
                click_id=click_id,
                item_kind=item_kind,
                item_id=doc.item_id,
            )
        return click_id
