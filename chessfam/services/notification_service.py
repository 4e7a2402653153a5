"""
Organizer notifications: the in-app inbox and outbound email.

The registration engine only ever calls ``notify_new_registration`` and
``notify_withdrawal``, once each, and treats any exception as a logged
non-event. Nothing here retries.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Callable, List, Optional, Union

from fastapi import BackgroundTasks
from jinja2 import Template
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from chessfam.core.config import settings
from chessfam.core.errors import ForbiddenError, NotFoundError
from chessfam.models.notification import Notification
from chessfam.schemas.notification_schemas import RegistrationNotice, WithdrawalNotice

logger = logging.getLogger(__name__)

REGISTRATION_SUBJECT = Template("New registration for {{ tournament_name }}")
REGISTRATION_BODY = Template("""\
<p>Hi {{ organizer_name }},</p>
<p><strong>{{ player_name }}</strong>{% if player_rating %} ({{ player_rating }}){% endif %}
just registered for <strong>{{ tournament_name }}</strong>.</p>
<p>Participants: {{ total_participants }}{% if max_participants %} / {{ max_participants }}{% endif %}</p>
<p>Entry fee: {{ "%.2f"|format(entry_fee_cents / 100) }} {{ currency }}</p>
<p>Contact: {{ player_email }}</p>
""")

WITHDRAWAL_SUBJECT = Template("{{ player_name }} withdrew from {{ tournament_name }}")
WITHDRAWAL_BODY = Template("""\
<p>Hi {{ organizer_name }},</p>
<p><strong>{{ player_name }}</strong> ({{ player_email }}) has withdrawn from
<strong>{{ tournament_name }}</strong>.</p>
<p>Participants: {{ total_participants }}{% if max_participants %} / {{ max_participants }}{% endif %}</p>
{% if refund_processed %}<p>A refund of {{ "%.2f"|format(refund_amount_cents / 100) }} was processed.</p>
{% else %}<p>No refund has been processed for this registration.</p>{% endif %}
""")


REGISTRATION_INBOX = Template(
    "{{ player_name }} registered for {{ tournament_name }} "
    "({{ total_participants }}{% if max_participants %}/{{ max_participants }}{% endif %} registered)"
)
WITHDRAWAL_INBOX = Template(
    "{{ player_name }} withdrew from {{ tournament_name }} "
    "({{ total_participants }}{% if max_participants %}/{{ max_participants }}{% endif %} registered)"
    "{% if refund_processed %}, refund issued{% endif %}"
)

INBOX_TEMPLATES = {
    "tournament_registration": REGISTRATION_INBOX,
    "tournament_withdrawal": WITHDRAWAL_INBOX,
}


# --- in-app inbox ---

def record_organizer_notice(db: Session, notice: Union[RegistrationNotice, WithdrawalNotice], type_: str) -> Notification:
    """Store ``notice`` in its organizer's inbox as a one-line message."""
    if notice.organizer_id is None:
        raise ValueError("Notice has no organizer to deliver to")
    notification = Notification(
        user_id=notice.organizer_id,
        tournament_id=notice.tournament_id,
        type=type_,
        message=INBOX_TEMPLATES[type_].render(notice.model_dump()),
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification

def get_user_notifications(
    db: Session, user_id: int, unread_only: bool = False, skip: int = 0, limit: int = 100
) -> List[Notification]:
    query = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        query = query.where(Notification.read_status.is_(False))
    query = query.order_by(Notification.created_at.desc(), Notification.id.desc()).offset(skip).limit(limit)
    return list(db.scalars(query))

def mark_notification_as_read(db: Session, notification_id: int, current_user_id: int) -> Notification:
    notification = db.get(Notification, notification_id)
    if notification is None:
        raise NotFoundError("Notification not found")
    if notification.user_id != current_user_id:
        raise ForbiddenError("Not authorized to mark this notification as read")

    if not notification.read_status:
        notification.read_status = True
        db.commit()
        db.refresh(notification)
    return notification

def mark_all_user_notifications_as_read(db: Session, current_user_id: int) -> int:
    """Mark every unread entry of ``current_user_id`` as read; returns how many changed."""
    updated = db.execute(
        update(Notification)
        .where(Notification.user_id == current_user_id, Notification.read_status.is_(False))
        .values(read_status=True)
        .execution_options(synchronize_session=False)
    ).rowcount
    db.commit()
    return updated


# --- outbound email ---

class EmailNotifier:
    """Sends organizer emails over SMTP. With no SMTP host configured it only logs."""

    def __init__(
        self,
        host: str = settings.SMTP_HOST,
        port: int = settings.SMTP_PORT,
        username: str = settings.SMTP_USERNAME,
        password: str = settings.SMTP_PASSWORD,
        use_tls: bool = settings.SMTP_USE_TLS,
        from_email: str = settings.FROM_EMAIL,
        from_name: str = settings.FROM_NAME,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_email = from_email
        self.from_name = from_name
        self.timeout = timeout

    def notify_new_registration(self, organizer_email: str, notice: RegistrationNotice) -> bool:
        context = notice.model_dump()
        return self.send(organizer_email, REGISTRATION_SUBJECT.render(context), REGISTRATION_BODY.render(context))

    def notify_withdrawal(self, organizer_email: str, notice: WithdrawalNotice) -> bool:
        context = notice.model_dump()
        return self.send(organizer_email, WITHDRAWAL_SUBJECT.render(context), WITHDRAWAL_BODY.render(context))

    def build_message(self, to_email: str, subject: str, html_body: str) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = f"{self.from_name} <{self.from_email}>"
        message["To"] = to_email
        message.attach(MIMEText(html_body, "html"))
        return message

    def send(self, to_email: str, subject: str, html_body: str) -> bool:
        if not self.host:
            logger.info("SMTP not configured, skipping email to %s: %s", to_email, subject)
            return False

        message = self.build_message(to_email, subject, html_body)
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            if self.use_tls:
                server.starttls()
            if self.username:
                server.login(self.username, self.password)
            server.send_message(message)
        logger.info("Sent email to %s: %s", to_email, subject)
        return True


class OrganizerNotifier:
    """Records an inbox entry for the organizer, then emails them."""

    def __init__(self, session_factory: Callable[[], Session], email: Optional[EmailNotifier] = None):
        self.session_factory = session_factory
        self.email = email or EmailNotifier()

    def notify_new_registration(self, organizer_email: str, notice: RegistrationNotice) -> None:
        self._record(notice, "tournament_registration")
        self.email.notify_new_registration(organizer_email, notice)

    def notify_withdrawal(self, organizer_email: str, notice: WithdrawalNotice) -> None:
        self._record(notice, "tournament_withdrawal")
        self.email.notify_withdrawal(organizer_email, notice)

    def _record(self, notice: Union[RegistrationNotice, WithdrawalNotice], type_: str) -> None:
        if notice.organizer_id is None:
            return
        with self.session_factory() as db:
            record_organizer_notice(db, notice, type_)


class DeferredNotifier:
    """Runs another notifier's calls after the HTTP response has been sent."""

    def __init__(self, background_tasks: BackgroundTasks, notifier):
        self.background_tasks = background_tasks
        self.notifier = notifier

    def notify_new_registration(self, organizer_email: str, notice: RegistrationNotice) -> None:
        self.background_tasks.add_task(_send_quietly, self.notifier.notify_new_registration, organizer_email, notice)

    def notify_withdrawal(self, organizer_email: str, notice: WithdrawalNotice) -> None:
        self.background_tasks.add_task(_send_quietly, self.notifier.notify_withdrawal, organizer_email, notice)


def _send_quietly(send, organizer_email: str, notice) -> None:
    try:
        send(organizer_email, notice)
    except Exception:
        logger.exception("Failed to send organizer notification to %s", organizer_email)
