"""Queue Core — explicit wiring of every queue component.

Invariants:
    - One EventBus per core, injected into every publisher and subscriber
    - The change detector is attached to the gateway feed before any
      operation runs, so no committed change is missed
    - start() rebuilds the freeze timers (and active-CA recounts) from the
      database before the caller starts accepting traffic
    - stop() cancels every in-memory timer; nothing else needs flushing

Design Decisions:
    - Plain container over a DI framework: the graph is small and fixed
"""

import logging
from dataclasses import dataclass

from helpqueue.core.domain_types import ACTIVE_TIMEOUT, WAIT_TIME_BUCKET_MINUTES
from helpqueue.core.repository_protocols import Clock
from helpqueue.infrastructure.clock import SystemClock
from helpqueue.infrastructure.database import DatabaseSessionManager
from helpqueue.infrastructure.event_bus import EventBus
from helpqueue.infrastructure.question_gateway import QuestionGateway
from helpqueue.services.active_cas import ActiveCaTracker
from helpqueue.services.change_detector import ChangeDetector
from helpqueue.services.metrics import QueueMetrics
from helpqueue.services.question_queries import QuestionQueries
from helpqueue.services.queue_meta import QueueMetaService
from helpqueue.services.reference_data import ReferenceDataService
from helpqueue.services.state_machine import QuestionStateMachine
from helpqueue.services.unfreeze_scheduler import UnfreezeScheduler

logger = logging.getLogger(__name__)


@dataclass
class QueueCore:
    db_manager: DatabaseSessionManager
    clock: Clock
    bus: EventBus
    gateway: QuestionGateway
    scheduler: UnfreezeScheduler
    detector: ChangeDetector
    questions: QuestionStateMachine
    queries: QuestionQueries
    metrics: QueueMetrics
    meta: QueueMetaService
    reference: ReferenceDataService
    tracker: ActiveCaTracker

    @classmethod
    def build(
        cls,
        db_manager: DatabaseSessionManager,
        clock: Clock | None = None,
        active_timeout: int = ACTIVE_TIMEOUT,
        bucket_minutes: int = WAIT_TIME_BUCKET_MINUTES,
    ) -> "QueueCore":
        clock = clock or SystemClock()
        bus = EventBus()
        gateway = QuestionGateway(db_manager, clock)
        scheduler = UnfreezeScheduler(gateway, bus, clock)
        detector = ChangeDetector(gateway, bus, scheduler)
        detector.attach()
        metrics = QueueMetrics(gateway, active_timeout, bucket_minutes)
        tracker = ActiveCaTracker(gateway, bus, metrics, clock, active_timeout)
        tracker.attach()
        return cls(
            db_manager=db_manager,
            clock=clock,
            bus=bus,
            gateway=gateway,
            scheduler=scheduler,
            detector=detector,
            questions=QuestionStateMachine(gateway),
            queries=QuestionQueries(gateway),
            metrics=metrics,
            meta=QueueMetaService(gateway, bus),
            reference=ReferenceDataService(gateway, bus),
            tracker=tracker,
        )

    async def start(self, reconcile: bool = True) -> None:
        if reconcile:
            await self.scheduler.reconcile()
            await self.tracker.reconcile()
        logger.info("Queue core started")

    async def stop(self) -> None:
        await self.scheduler.shutdown()
        await self.tracker.shutdown()
        logger.info("Queue core stopped")
