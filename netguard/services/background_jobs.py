import asyncio
import logging

from fastapi.encoders import jsonable_encoder
from starlette.concurrency import run_in_threadpool

from netguard.services.state import NetGuardServices
from netguard.services.threat_summary import system_status, threat_level

logger = logging.getLogger(__name__)


def monitoring_payload(services: NetGuardServices) -> dict:
    events = services.monitor.events()
    stats = services.monitor.model_stats()
    return jsonable_encoder(
        {
            "type": "monitoring.update",
            "payload": {
                "threat": threat_level(events),
                "status": system_status(events, stats),
                "events": events[:10],
                "model_stats": stats,
                "metrics": services.monitor.snapshot(),
            },
        }
    )


async def realtime_push_loop(services: NetGuardServices) -> None:
    while True:
        try:
            if await services.hub.size() > 0:
                await services.hub.broadcast(monitoring_payload(services))
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Realtime push failed")
        await asyncio.sleep(services.settings.realtime_push_interval_seconds)


async def resource_sampling_loop(services: NetGuardServices) -> None:
    while True:
        try:
            # Sampling can trigger an event and a retrain, keep it off the event loop.
            events = await run_in_threadpool(services.sampler.feed, services.monitor)
            for event in events:
                logger.warning("%s: %s", event.type.value, event.description)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Resource sampling failed")
        await asyncio.sleep(services.settings.resource_sample_interval_seconds)
