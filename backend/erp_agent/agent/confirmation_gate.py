"""
Confirmation gate: dangerous commands never run without an explicit confirmation.

Flow:
1. Dangerous + not confirmed -> command parked as a PendingCommand, the
   operator gets a prompt plus a confirm token. Nothing is executed.
2. Confirmed + live token  -> exactly the parked command is replayed (once).
3. Confirmed without a usable token -> caller re-interprets the text.
"""
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from erp_agent.core.config import settings
from erp_agent.models.pending_command import PendingCommand
from erp_agent.agent import response_composer
from erp_agent.schemas.nli import NLIResponse
from erp_ai.intent_schema import ActionType, Command

logger = logging.getLogger(__name__)

DANGEROUS_ACTIONS = frozenset({ActionType.DELETE_ORDER})

# Declared sensitive, no handler yet
RESERVED_SENSITIVE_ACTIONS = frozenset({"delete_goods", "reset_password"})

STATUS_PENDING = "PENDING"
STATUS_EXECUTED = "EXECUTED"
STATUS_EXPIRED = "EXPIRED"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def is_dangerous(action) -> bool:
    value = getattr(action, "value", action)
    return value in {a.value for a in DANGEROUS_ACTIONS} or value in RESERVED_SENSITIVE_ACTIONS


class ConfirmationGate:

    def __init__(
        self,
        db: Session,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.db = db
        self.ttl = timedelta(seconds=ttl_seconds if ttl_seconds is not None else settings.CONFIRM_TTL_SECONDS)
        self.clock = clock

    def requires_confirmation(self, command: Command, confirmed: bool) -> bool:
        return is_dangerous(command.action) and not confirmed

    def purge(self) -> int:
        """Drop used, expired and timed-out rows. Returns how many went."""
        removed = (
            self.db.query(PendingCommand)
            .filter(or_(PendingCommand.status != STATUS_PENDING, PendingCommand.expires_at <= self.clock()))
            .delete(synchronize_session=False)
        )
        if removed:
            logger.debug(f"🧹 Purged {removed} stale pending command(s)")
        return removed

    def park(self, command: Command) -> str:
        """Store ``command`` for later replay and return its token."""
        self.purge()
        token = secrets.token_urlsafe(16)
        self.db.add(PendingCommand(
            token=token,
            action=command.action.value,
            payload=command.to_dict(),
            original_input=command.original_input,
            status=STATUS_PENDING,
            expires_at=self.clock() + self.ttl,
        ))
        self.db.commit()
        logger.info(f"⏸️ Dangerous command parked: {command.action.value} (token …{token[-4:]})")
        return token

    def prompt(self, command: Command) -> NLIResponse:
        token = self.park(command)
        return NLIResponse(
            reply=response_composer.confirmation_text(command.action, command.order_id),
            need_confirm=True,
            confirm_token=token,
        )

    def redeem(self, token: Optional[str]) -> Optional[Command]:
        """The parked command for ``token``, or None when unknown, used or expired."""
        if not token:
            return None
        now = self.clock()
        live = self.db.query(PendingCommand).filter(
            PendingCommand.token == token,
            PendingCommand.status == STATUS_PENDING,
        )
        # Conditional UPDATE: of two concurrent confirmations only one sees rowcount 1
        claimed = live.filter(PendingCommand.expires_at > now).update(
            {PendingCommand.status: STATUS_EXECUTED}, synchronize_session=False
        )
        if not claimed:
            expired = live.filter(PendingCommand.expires_at <= now).update(
                {PendingCommand.status: STATUS_EXPIRED}, synchronize_session=False
            )
            self.db.commit()
            if expired:
                logger.info("⌛ Confirm token expired")
            else:
                logger.info("Confirm token unknown or already used")
            return None

        self.db.commit()
        pending = self.db.query(PendingCommand).filter(PendingCommand.token == token).one()
        return Command.model_validate(pending.payload)
