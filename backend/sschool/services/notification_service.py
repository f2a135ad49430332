"""
Email notifications for account events.

Handlers never send mail themselves. They hand a ``Notification`` to
``Notifier.enqueue`` through FastAPI background tasks, which run after the
response has been sent; a single worker task drains the queue and delivers
through the configured mailer. Delivery failures are logged and dropped, so
they cannot change the outcome of the request that produced them.
"""

import asyncio
import logging
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional, Protocol

import aiosmtplib

from sschool.core.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    to: str
    subject: str
    body: str


class Mailer(Protocol):
    async def send(self, notification: Notification) -> None: ...


class SMTPMailer:
    """Async SMTP delivery via aiosmtplib"""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        sender: str = "no-reply@sschool.local",
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender

    async def send(self, notification: Notification) -> None:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = notification.to
        message["Subject"] = notification.subject
        message.set_content(notification.body)

        await aiosmtplib.send(
            message,
            hostname=self.host,
            port=self.port,
            username=self.username,
            password=self.password,
            start_tls=self.use_tls,
        )
        logger.info(f"[Email] Sent '{notification.subject}' to {notification.to}")


class Notifier:
    """Queue plus one background worker; owned by the application lifespan"""

    def __init__(self, mailer: Optional[Mailer], max_queue_size: int = 1000):
        self.mailer = mailer
        self.max_queue_size = max_queue_size
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    async def start(self) -> None:
        if self.running:
            return
        self._queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._worker = asyncio.create_task(self._run(), name="notification-worker")
        if self.mailer is None:
            logger.info("[Email] SMTP not configured; notifications will be logged and dropped")

    async def stop(self, drain_timeout: float = 5.0) -> None:
        """Give queued notifications ``drain_timeout`` seconds, then stop the worker"""
        if self._worker is None:
            return
        if self._queue is not None and self.running:
            try:
                await asyncio.wait_for(self._queue.join(), timeout=drain_timeout)
            except asyncio.TimeoutError:
                # Anything still queued or in flight is lost with the worker
                logger.warning(
                    f"[Email] Shutting down with {self._queue.qsize()} queued notifications "
                    f"undelivered after {drain_timeout}s"
                )
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None

    async def enqueue(self, notification: Notification) -> bool:
        """Queue a notification; returns False if it was dropped"""
        if self._queue is None or not self.running:
            logger.warning(f"[Email] Notifier not running, dropping '{notification.subject}'")
            return False
        try:
            self._queue.put_nowait(notification)
        except asyncio.QueueFull:
            logger.warning(f"[Email] Queue full, dropping '{notification.subject}' to {notification.to}")
            return False
        return True

    async def join(self) -> None:
        """Wait until every queued notification has been handled"""
        if self._queue is not None:
            await self._queue.join()

    async def _run(self) -> None:
        while True:
            notification = await self._queue.get()
            try:
                await self._deliver(notification)
            finally:
                self._queue.task_done()

    async def _deliver(self, notification: Notification) -> None:
        if self.mailer is None:
            logger.info(f"[Email] Skipping '{notification.subject}' to {notification.to}")
            return
        try:
            await self.mailer.send(notification)
        except Exception:
            logger.exception(f"[Email] Failed to send '{notification.subject}' to {notification.to}")


def build_notifier(settings: Settings) -> Notifier:
    mailer = None
    if settings.SMTP_HOST:
        mailer = SMTPMailer(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            use_tls=settings.SMTP_USE_TLS,
            sender=settings.EMAIL_FROM,
        )
    return Notifier(mailer)


def welcome_notification(name: str, email: str, role: str) -> Notification:
    return Notification(
        to=email,
        subject="Welcome to SSchool",
        body=f"Hello {name},\n\nYour {role} account has been created. You can now sign in with {email}.\n",
    )


def account_updated_notification(name: str, email: str) -> Notification:
    return Notification(
        to=email,
        subject="Your SSchool account was updated",
        body=f"Hello {name},\n\nAn administrator updated your account details.\n",
    )


def account_removed_notification(name: str, email: str) -> Notification:
    return Notification(
        to=email,
        subject="Your SSchool account was removed",
        body=f"Hello {name},\n\nYour account and its study materials have been deleted.\n",
    )
