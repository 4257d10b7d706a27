from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Callable, Protocol

from clinic.repository_interface import ClinicRepositoryProtocol
from conversation.calendar import DEFAULT_BOOKING_WINDOW_DAYS, DEFAULT_TIME_SLOTS
from conversation.commands import CommandTable
from conversation.models import DialogueStep, Session, Transition
from conversation.session_store import DEFAULT_SESSION_TTL_MINUTES, SessionStore
from conversation.state_machine import DEFAULT_DEPARTMENT_ID, StateMachine
from core.enums import SessionState
from whatsapp import message_templates
from whatsapp.envelope import normalize_sender_key

logger = logging.getLogger(__name__)

OVERRIDE_COMMANDS = frozenset({"BATAL", "CANCEL", "MENU"})
RETURN_TO_MENU_COMMAND = "MENU"


class MessageSender(Protocol):
    def send(self, recipient: str, text: str) -> None: ...


class Dispatcher:
    """Entry point for one inbound text message.

    Holds the sender's session lock for the whole read-modify-write so that
    replies from one user are handled one at a time, in arrival order.
    """

    def __init__(
        self,
        sessions: SessionStore,
        commands: CommandTable,
        state_machine: StateMachine,
        sender: MessageSender,
    ) -> None:
        self.sessions = sessions
        self.commands = commands
        self.state_machine = state_machine
        self.sender = sender

    def on_message(self, sender_key: str, raw_text: str) -> DialogueStep | None:
        text = (raw_text or "").strip()
        if not text:
            return None
        key = normalize_sender_key(sender_key)
        if not key:
            return None

        with self.sessions.lock(key):
            session = self.sessions.get(key)
            previous_state = session.state
            logger.info("message-received sender=%s state=%s", key, previous_state.value)
            command: str | None = None
            try:
                command, transition = self._route(key, session, text)
                self._apply(key, transition)
            except Exception:  # noqa: BLE001
                logger.exception("handler-failed sender=%s state=%s", key, previous_state.value)
                transition = Transition.stay(message_templates.build_generic_error_message())
            state = self.sessions.get(key).state
            self._send(key, transition.reply)

        return DialogueStep(
            sender_key=key,
            text=text,
            previous_state=previous_state,
            state=state,
            reply=transition.reply,
            command=command,
            selection=transition.selection,
        )

    def _route(self, key: str, session: Session, text: str) -> tuple[str | None, Transition]:
        upper = text.upper()
        if session.state != SessionState.IDLE and upper in OVERRIDE_COMMANDS:
            if upper == RETURN_TO_MENU_COMMAND:
                return upper, Transition.finish(message_templates.build_welcome_message())
            return upper, Transition.finish(message_templates.build_process_cancelled_message())

        if session.state == SessionState.IDLE:
            command, action = self.commands.lookup(upper)
            return command, action(key)

        handler = self.state_machine.handler_for(session.state)
        if handler is None:
            logger.warning("state-without-handler sender=%s state=%s", key, session.state.value)
            return None, Transition.finish(message_templates.build_welcome_message())
        return None, handler(key, session, text)

    def _apply(self, key: str, transition: Transition) -> None:
        if transition.finished:
            self.sessions.clear(key)
        elif transition.state is not None:
            self.sessions.update(key, transition.state, **transition.patch)

    def _send(self, recipient: str, text: str) -> None:
        try:
            self.sender.send(recipient, text)
        except Exception as exc:  # noqa: BLE001
            logger.error("send-failed recipient=%s error=%s", recipient, exc)


def create_dispatcher(
    config: dict[str, Any],
    repository: ClinicRepositoryProtocol,
    sender: MessageSender,
    today: Callable[[], date] | None = None,
    now: Callable[[], datetime] | None = None,
) -> Dispatcher:
    conversation_conf = config.get("conversation", {})
    clinic_conf = config.get("clinic", {})
    sessions = SessionStore(
        session_ttl_minutes=float(conversation_conf.get("session_ttl_minutes", DEFAULT_SESSION_TTL_MINUTES)),
        now=now,
    )
    state_machine = StateMachine(
        repository=repository,
        today=today,
        default_department_id=int(clinic_conf.get("default_department_id", DEFAULT_DEPARTMENT_ID)),
        booking_window_days=int(conversation_conf.get("booking_window_days", DEFAULT_BOOKING_WINDOW_DAYS)),
        time_slots=[str(slot) for slot in conversation_conf.get("time_slots") or DEFAULT_TIME_SLOTS],
    )
    commands = CommandTable(repository=repository, admin_phone=clinic_conf.get("admin_phone"))
    return Dispatcher(sessions=sessions, commands=commands, state_machine=state_machine, sender=sender)
