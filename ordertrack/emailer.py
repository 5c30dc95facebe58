# ordertrack/emailer.py
"""
Outbound email.

Messages are put on a bounded in-memory queue and sent by a single daemon
worker thread, so a slow or failing SMTP server never holds up a request.
A full queue drops the message; a failed send is logged and forgotten.
"""
from __future__ import annotations

import logging
import queue
import smtplib
import threading
from email.message import EmailMessage
from typing import Callable, Optional

from .config import Settings

logger = logging.getLogger(__name__)


class SmtpSender:
    def __init__(self, settings: Settings):
        self.host = settings.email_host
        self.port = settings.email_port
        self.user = settings.email_user
        self.password = settings.email_password
        self.timeout = settings.email_timeout_seconds

    def __call__(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            server.ehlo()
            if server.has_extn("starttls"):
                server.starttls()
                server.ehlo()
            if self.user:
                server.login(self.user, self.password)
            server.send_message(msg)


class Outbox:
    def __init__(
        self,
        settings: Settings,
        sender: Optional[Callable[[EmailMessage], None]] = None,
        poll_interval: float = 0.5,
    ) -> None:
        self.from_address = settings.email_from
        self.enabled = sender is not None or bool(settings.email_host)
        self._send = sender or SmtpSender(settings)
        self._queue: "queue.Queue[EmailMessage]" = queue.Queue(maxsize=max(1, settings.outbox_max_size))
        self._poll_interval = poll_interval
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="ordertrack-outbox", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        """Send what is already queued, then stop the worker."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def pending(self) -> int:
        return self._queue.qsize()

    def submit(self, msg: EmailMessage) -> bool:
        if not self.enabled:
            logger.info(f"Email disabled, not sending '{msg['Subject']}' to {msg['To']}")
            return False
        try:
            self._queue.put_nowait(msg)
        except queue.Full:
            logger.warning(f"Outbox full, dropping '{msg['Subject']}' to {msg['To']}")
            return False
        return True

    def send_order_email(self, to_email: str, subject: str, body: str, html: Optional[str] = None) -> bool:
        msg = EmailMessage()
        msg["From"] = self.from_address
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.set_content(body)
        if html:
            msg.add_alternative(html, subtype="html")
        return self.submit(msg)

    def _run(self) -> None:
        while True:
            try:
                msg = self._queue.get(timeout=self._poll_interval)
            except queue.Empty:
                if self._stop_event.is_set():
                    return
                continue
            try:
                self._send(msg)
                logger.info(f"Email sent to {msg['To']}: {msg['Subject']}")
            except Exception:
                logger.exception(f"Failed to send email to {msg['To']}: {msg['Subject']}")
            finally:
                self._queue.task_done()
