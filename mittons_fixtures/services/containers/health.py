"""Health check polling for newly created services."""

import asyncio
from typing import Optional

from loguru import logger

from mittons_fixtures.config import settings
from .gateway import ServiceGateway
from .models import HealthCheckResult, HealthOutcome, HealthStatus

logger = logger.bind(name=__name__)


class HealthCheckPoller:
    """Polls a service's health until it is usable, the deadline passes or the caller stops it."""

    def __init__(self, gateway: ServiceGateway, poll_interval: Optional[float] = None) -> None:
        """Initialize the poller.

        Args:
            gateway: Gateway used to query health status
            poll_interval: Seconds between queries, defaults to the configured interval
        """
        self.gateway = gateway
        self.poll_interval = poll_interval if poll_interval is not None else settings.poll_interval_seconds

    async def wait_until_healthy(
        self,
        service_id: str,
        timeout: Optional[float] = None,
        stop: Optional[asyncio.Event] = None,
    ) -> HealthCheckResult:
        """Wait for a service to report RUNNING or HEALTHY.

        UNKNOWN and UNHEALTHY never end the wait on their own; only the
        deadline or ``stop`` do. Task cancellation propagates normally.

        Args:
            service_id: Runtime id of the service
            timeout: Deadline in seconds, defaults to the configured timeout
            stop: Optional event the caller sets to abandon the wait

        Returns:
            The outcome along with the last observed status
        """
        if timeout is None:
            timeout = settings.HEALTH_CHECK_TIMEOUT_SECONDS

        loop = asyncio.get_running_loop()
        started = loop.time()
        deadline = started + timeout
        status = HealthStatus.UNKNOWN

        def result(outcome: HealthOutcome) -> HealthCheckResult:
            return HealthCheckResult(
                outcome=outcome,
                service_id=service_id,
                last_status=status,
                elapsed=loop.time() - started,
                timeout=timeout,
            )

        while True:
            if stop is not None and stop.is_set():
                logger.warning(f"Health check for {service_id} cancelled (last status: {status.value})")
                return result(HealthOutcome.CANCELLED)

            remaining = deadline - loop.time()
            if remaining <= 0:
                logger.warning(f"Health check for {service_id} timed out after {timeout}s (last status: {status.value})")
                return result(HealthOutcome.TIMED_OUT)

            try:
                async with asyncio.timeout(remaining):
                    status = await self.gateway.get_health_status(service_id)
            except TimeoutError:
                continue

            logger.debug(f"Health status for {service_id}: {status.value}")
            if status.is_ready:
                logger.info(f"Service {service_id} is {status.value}")
                return result(HealthOutcome.READY)

            delay = min(self.poll_interval, max(deadline - loop.time(), 0))
            if stop is None:
                await asyncio.sleep(delay)
            else:
                try:
                    await asyncio.wait_for(stop.wait(), timeout=delay)
                except TimeoutError:
                    pass
