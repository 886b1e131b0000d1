"""Alert dispatcher — concurrent fan-out across recipients and channels.

Every (user, channel) pair is an independent ``asyncio`` task.  The
dispatch call waits for all of them, bounded by an overall deadline,
and never stops early because one pair failed.  Pairs still running at
the deadline are cancelled and reported ``timed_out``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from collections.abc import Callable
from time import perf_counter

from alertgate.audit import AuditAction
from alertgate.audit import AuditEntry
from alertgate.audit import AuditLogger
from alertgate.channels import EmailTransport
from alertgate.channels import LocalNotifier
from alertgate.channels import PushTransport
from alertgate.channels import render_email
from alertgate.channels import render_local_payload
from alertgate.channels import render_push_payload
from alertgate.config import DispatchConfig
from alertgate.engine.ratelimit import RateLimiter
from alertgate.engine.visibility import Recipient
from alertgate.history import HistoryStore
from alertgate.identity import IdentityDirectory
from alertgate.models.domain import Alert
from alertgate.models.domain import Channel
from alertgate.models.domain import ChannelDelivery
from alertgate.models.domain import DeliveryStatus
from alertgate.models.domain import DispatchReport
from alertgate.observability import record_delivery
from alertgate.observability import record_latency

logger = logging.getLogger(__name__)

DISPATCH_ACTOR = "alertgate.dispatcher"


class Dispatcher:
    """Sends an accepted alert to each recipient over their enabled channels."""

    def __init__(
        self,
        *,
        rate_limiter: RateLimiter,
        push: PushTransport,
        email: EmailTransport,
        local: LocalNotifier,
        directory: IdentityDirectory,
        history: HistoryStore,
        audit_logger: AuditLogger | None = None,
        config: DispatchConfig | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self._rate_limiter = rate_limiter
        self._push = push
        self._email = email
        self._local = local
        self._directory = directory
        self._history = history
        self._audit = audit_logger
        self.config = config or DispatchConfig()
        self._sleep = sleep or asyncio.sleep

    async def dispatch(
        self,
        alert: Alert,
        recipients: list[Recipient],
    ) -> DispatchReport:
        """Deliver *alert* and return the settled outcome of every pair."""
        start = perf_counter()
        ok = False
        try:
            deliveries = await self._fan_out(alert, recipients)
            records = await asyncio.gather(
                *(
                    self._history.record(alert, recipient.user_id, deliveries)
                    for recipient in recipients
                )
            )
            record_by_user = {record.user_id: record.id for record in records}
            for delivery in deliveries:
                record_delivery(
                    channel=delivery.channel.value, status=delivery.status.value
                )
                await self._audit_delivery(
                    alert, delivery, record_by_user.get(delivery.user_id)
                )
            ok = True
            return DispatchReport(
                alert_id=alert.id,
                deliveries=deliveries,
                record_ids=[record.id for record in records],
            )
        finally:
            record_latency(
                operation="dispatch.run",
                duration_ms=(perf_counter() - start) * 1000,
                ok=ok,
            )

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------

    async def _fan_out(
        self,
        alert: Alert,
        recipients: list[Recipient],
    ) -> list[ChannelDelivery]:
        pairs: list[tuple[str, Channel]] = [
            (recipient.user_id, channel)
            for recipient in recipients
            for channel in recipient.preference.channels.enabled_channels()
        ]
        if not pairs:
            return []

        tasks = [
            asyncio.create_task(self._deliver(alert, user_id, channel))
            for user_id, channel in pairs
        ]
        deadline = self.config.effective_overall_timeout()
        _, pending = await asyncio.wait(tasks, timeout=deadline)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(
                "dispatch of %s hit the %.1fs deadline with %d pair(s) unresolved",
                alert.id,
                deadline,
                len(pending),
            )

        deliveries: list[ChannelDelivery] = []
        for task, (user_id, channel) in zip(tasks, pairs):
            if task in pending:
                deliveries.append(
                    ChannelDelivery(
                        user_id=user_id,
                        channel=channel,
                        status=DeliveryStatus.timed_out,
                        error="overall dispatch deadline exceeded",
                    )
                )
            elif task.exception() is not None:
                exc = task.exception()
                deliveries.append(
                    ChannelDelivery(
                        user_id=user_id,
                        channel=channel,
                        status=DeliveryStatus.failed,
                        error=f"{type(exc).__name__}: {exc}",
                    )
                )
            else:
                deliveries.append(task.result())
        return deliveries

    async def _deliver(
        self,
        alert: Alert,
        user_id: str,
        channel: Channel,
    ) -> ChannelDelivery:
        cfg = self.config
        if not self._rate_limiter.allow(
            cfg.rate_limit_endpoint,
            user_id,
            cfg.rate_limit_max_requests,
            cfg.rate_limit_window_seconds,
        ):
            return ChannelDelivery(
                user_id=user_id, channel=channel, status=DeliveryStatus.rate_limited
            )

        if channel.is_local:
            return self._deliver_local(alert, user_id, channel)
        return await self._deliver_external(alert, user_id, channel)

    def _deliver_local(
        self,
        alert: Alert,
        user_id: str,
        channel: Channel,
    ) -> ChannelDelivery:
        try:
            self._local.notify(channel, user_id, render_local_payload(alert))
        except Exception:
            # An absent UI is not a dispatch failure
            logger.warning(
                "local %s notifier failed for %s", channel.value, user_id, exc_info=True
            )
        return ChannelDelivery(
            user_id=user_id,
            channel=channel,
            status=DeliveryStatus.delivered,
            attempts=1,
        )

    async def _deliver_external(
        self,
        alert: Alert,
        user_id: str,
        channel: Channel,
    ) -> ChannelDelivery:
        send = await self._build_send(alert, user_id, channel)
        if send is None:
            return ChannelDelivery(
                user_id=user_id,
                channel=channel,
                status=DeliveryStatus.failed,
                error="no email address on file",
            )

        cfg = self.config
        delays = cfg.backoff_delays()
        last_error: str | None = None
        attempts = 0
        for attempt in range(cfg.max_retries + 1):
            if attempt:
                await self._sleep(delays[attempt - 1])
            attempts += 1
            start = perf_counter()
            try:
                await asyncio.wait_for(send(), timeout=cfg.send_timeout_seconds)
            except asyncio.TimeoutError:
                last_error = f"timed out after {cfg.send_timeout_seconds}s"
            except Exception as exc:
                last_error = f"{type(exc).__name__}: {exc}"
            else:
                record_latency(
                    operation=f"channel.{channel.value}",
                    duration_ms=(perf_counter() - start) * 1000,
                )
                return ChannelDelivery(
                    user_id=user_id,
                    channel=channel,
                    status=DeliveryStatus.delivered,
                    attempts=attempts,
                )
            record_latency(
                operation=f"channel.{channel.value}",
                duration_ms=(perf_counter() - start) * 1000,
                ok=False,
            )
            logger.info(
                "%s send to %s failed (attempt %d/%d): %s",
                channel.value,
                user_id,
                attempts,
                cfg.max_retries + 1,
                last_error,
            )

        return ChannelDelivery(
            user_id=user_id,
            channel=channel,
            status=DeliveryStatus.failed,
            attempts=attempts,
            error=last_error,
        )

    async def _build_send(
        self,
        alert: Alert,
        user_id: str,
        channel: Channel,
    ) -> Callable[[], Awaitable[None]] | None:
        if channel == Channel.push:
            payload = render_push_payload(alert)
            return lambda: self._push.send_push(user_id, payload)

        address = await self._directory.email(user_id)
        if not address:
            return None
        subject, body = render_email(alert)
        return lambda: self._email.send_email(address, subject, body)

    async def _audit_delivery(
        self,
        alert: Alert,
        delivery: ChannelDelivery,
        record_id: str | None,
    ) -> None:
        if self._audit is None:
            return
        await self._audit.log(
            AuditEntry(
                actor_id=DISPATCH_ACTOR,
                action=AuditAction.DISPATCH,
                target=alert.id,
                outcome=delivery.status.value,
                details={
                    "user_id": delivery.user_id,
                    "channel": delivery.channel.value,
                    "attempts": delivery.attempts,
                    "error": delivery.error,
                    "record_id": record_id,
                },
            )
        )
