"""
Alert Workflow

Fetches the stream collection, classifies every stream and submits the
resulting candidates to an AlertSink.

- A failed snapshot fetch aborts the run (SnapshotFetchError); the caller
  decides when to retry.
- Candidates are submitted concurrently and independently. A failing or slow
  sink call is logged and skipped; it never affects other candidates.
- Re-running is safe: the sink deduplicates by (stream_id, type), so the next
  run simply re-detects and re-submits whatever was missed.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from cascade.config import settings
from cascade.streams.numeric import utcnow
from cascade.streams.repository import SnapshotSource
from cascade.streams.vesting import log_invariant_violations
from .engine import RiskAlert, RiskClassifier
from .sink import AlertSink, UpsertResult

logger = logging.getLogger(__name__)


class SnapshotFetchError(RuntimeError):
    """The stream collection could not be read; the run cannot proceed."""


@dataclass
class AlertGenerationResult:
    """Counts reported by one workflow run."""
    ok: bool
    alerts_checked: int
    alerts_created: int
    alerts_duplicate: int = 0
    alerts_failed: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "alerts_checked": self.alerts_checked,
            "alerts_created": self.alerts_created,
            "alerts_duplicate": self.alerts_duplicate,
            "alerts_failed": self.alerts_failed,
        }


class AlertWorkflow:
    """Snapshot fetch -> RiskClassifier -> AlertSink."""

    def __init__(
        self,
        source: SnapshotSource,
        sink: AlertSink,
        classifier: Optional[RiskClassifier] = None,
        clock: Callable[[], datetime] = utcnow,
        sink_timeout: Optional[float] = None,
    ):
        self.source = source
        self.sink = sink
        self.classifier = classifier or RiskClassifier()
        self.clock = clock
        self.sink_timeout = sink_timeout if sink_timeout is not None else settings.ALERT_SINK_TIMEOUT_SECONDS

    async def run(self, organization_id: Optional[str] = None) -> AlertGenerationResult:
        """
        Run one alert generation pass.

        Args:
            organization_id: Limit the scan to one organization (None = all tenants)

        Returns:
            AlertGenerationResult; alerts_checked counts every candidate,
            alerts_created only new, non-duplicate inserts

        Raises:
            SnapshotFetchError: if the stream collection cannot be fetched
        """
        try:
            snapshots = await self.source.fetch_streams(organization_id)
        except Exception as e:
            logger.error(f"Failed to fetch stream snapshots: {e}")
            raise SnapshotFetchError("Failed to fetch stream snapshots") from e

        if not snapshots:
            return AlertGenerationResult(ok=True, alerts_checked=0, alerts_created=0)

        log_invariant_violations(snapshots)

        candidates = self.classifier.classify_all(snapshots, self.clock())

        results = await asyncio.gather(*(self._submit(candidate) for candidate in candidates))

        created = sum(1 for result in results if result is not None and result.created and not result.duplicate)
        duplicate = sum(1 for result in results if result is not None and result.duplicate)
        failed = sum(1 for result in results if result is None)

        logger.info(
            f"Alert generation checked {len(candidates)} candidates across {len(snapshots)} streams: "
            f"{created} created, {duplicate} duplicate, {failed} failed"
        )

        return AlertGenerationResult(
            ok=True,
            alerts_checked=len(candidates),
            alerts_created=created,
            alerts_duplicate=duplicate,
            alerts_failed=failed,
        )

    async def _submit(self, candidate: RiskAlert) -> Optional[UpsertResult]:
        """Submit one candidate; failures are logged and reported as None."""
        try:
            if self.sink_timeout and self.sink_timeout > 0:
                return await asyncio.wait_for(self.sink.upsert(candidate), timeout=self.sink_timeout)
            return await self.sink.upsert(candidate)
        except asyncio.TimeoutError:
            logger.error(
                f"Timed out creating {candidate.type.value} alert for stream {candidate.stream_id}"
            )
        except Exception as e:
            logger.error(
                f"Failed to create {candidate.type.value} alert for stream {candidate.stream_id}: {e}"
            )
        return None

