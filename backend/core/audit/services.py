from __future__ import annotations

import hashlib
import json
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.serializers.json import DjangoJSONEncoder
from django.core.validators import validate_ipv46_address
from django.db import IntegrityError, close_old_connections, transaction
from django.utils import timezone
from django.utils.ipv6 import clean_ipv6_address

from audit.models import AuditLogEntry

logger = logging.getLogger(__name__)

_METHOD_ACTIONS = {
    "POST": AuditLogEntry.ACTION_CREATE,
    "PUT": AuditLogEntry.ACTION_UPDATE,
    "PATCH": AuditLogEntry.ACTION_UPDATE,
    "DELETE": AuditLogEntry.ACTION_DELETE,
    AuditLogEntry.ACTION_CREATE: AuditLogEntry.ACTION_CREATE,
    AuditLogEntry.ACTION_UPDATE: AuditLogEntry.ACTION_UPDATE,
    AuditLogEntry.ACTION_DELETE: AuditLogEntry.ACTION_DELETE,
}


class AuditChainError(RuntimeError):
    """Raised when an entry cannot be linked into its hash chain."""


@dataclass(frozen=True, slots=True)
class AuditDraft:
    actor_user_id: int
    action: str
    entity_type: str
    entity_id: int
    company_id: Optional[int] = None
    actor_username: str = ""
    previous_values: Any = None
    new_values: Any = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    correlation_id: str = ""
    request_method: str = ""
    request_path: str = ""
    occurred_at: datetime = field(default_factory=timezone.now)


@dataclass(frozen=True, slots=True)
class ChainVerification:
    chain_id: str
    ok: bool
    checked: int
    broken_entry_id: Optional[int] = None


def _canonical_json(value) -> str:
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=True,
        default=str,
    )


def _json_safe(value):
    """Normalize a payload to what the JSONField will hand back after a round trip."""

    if value is None:
        return None
    return json.loads(json.dumps(value, cls=DjangoJSONEncoder))


def normalize_ip_address(value) -> Optional[str]:
    """Return the address as the database will store it, or None when it is not an IP."""

    raw = str(value or "").strip()
    if not raw:
        return None
    try:
        validate_ipv46_address(raw)
        if ":" in raw:
            return clean_ipv6_address(raw)
    except ValidationError:
        return None
    return raw


def _coerce_entity_id(value) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    raw = str(value).strip()
    if raw.isdigit() and int(raw) > 0:
        return int(raw)
    return None


def _discover_entity_id(result_payload) -> Optional[int]:
    if not isinstance(result_payload, Mapping):
        return None
    data = result_payload.get("data")
    if isinstance(data, Mapping):
        found = _coerce_entity_id(data.get("id"))
        if found is not None:
            return found
    return _coerce_entity_id(result_payload.get("id"))


def resolve_entity_id(explicit_id=None, result_payload=None) -> int:
    """Explicit target id, else an id found in the result payload, else 0."""

    found = _coerce_entity_id(explicit_id)
    if found is None:
        found = _discover_entity_id(result_payload)
    return found if found is not None else AuditLogEntry.UNKNOWN_ENTITY_ID


def action_for_method(method_class) -> Optional[str]:
    return _METHOD_ACTIONS.get(str(method_class or "").upper())


def build_audit_draft(
    *,
    actor_user_id: Optional[int],
    method_class: str,
    entity_type: str,
    entity_id=None,
    payload=None,
    result_payload=None,
    previous_values=None,
    succeeded: bool = True,
    company_id: Optional[int] = None,
    actor_username: str = "",
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    correlation_id: str = "",
    request_method: str = "",
    request_path: str = "",
) -> Optional[AuditDraft]:
    """Return the entry an operation outcome should produce, or None.

    No entry for reads, failed operations or anonymous actors.
    """

    action = action_for_method(method_class)
    if action is None or not succeeded or actor_user_id is None:
        return None

    return AuditDraft(
        actor_user_id=int(actor_user_id),
        action=action,
        entity_type=str(entity_type or "")[:120],
        entity_id=resolve_entity_id(entity_id, result_payload),
        company_id=company_id,
        actor_username=(actor_username or "")[:150],
        previous_values=_json_safe(previous_values),
        new_values=None if action == AuditLogEntry.ACTION_DELETE else _json_safe(payload),
        ip_address=normalize_ip_address(ip_address),
        user_agent=user_agent or None,
        correlation_id=str(correlation_id or "")[:64],
        request_method=(request_method or "").upper()[:12],
        request_path=(request_path or "")[:255],
    )


def _chain_id(company_id: Optional[int]) -> str:
    return f"tenant:{company_id}" if company_id else "platform"


def _hash_payload(entry: AuditLogEntry) -> dict:
    return {
        "chain_id": entry.chain_id,
        "company_id": entry.company_id,
        "actor_user_id": entry.actor_user_id,
        "actor_username": entry.actor_username,
        "action": entry.action,
        "entity_type": entry.entity_type,
        "entity_id": entry.entity_id,
        "previous_values": entry.previous_values,
        "new_values": entry.new_values,
        "ip_address": entry.ip_address,
        "user_agent": entry.user_agent,
        "correlation_id": entry.correlation_id,
        "request_method": entry.request_method,
        "request_path": entry.request_path,
        "occurred_at": entry.occurred_at.isoformat(),
    }


def _build_entry_hash(payload: dict, prev_hash: str) -> str:
    payload_json = _canonical_json(payload)
    material = f"{prev_hash}{payload_json}".encode("utf-8")
    return hashlib.sha256(material).hexdigest()


def _entity_timestamp(draft: AuditDraft) -> datetime:
    # Change history of one entity must never go back in time.
    latest = (
        AuditLogEntry.all_objects.filter(
            company_id=draft.company_id,
            entity_type=draft.entity_type,
            entity_id=draft.entity_id,
        )
        .order_by("-occurred_at")
        .values_list("occurred_at", flat=True)
        .first()
    )
    if latest is not None and latest > draft.occurred_at:
        return latest
    return draft.occurred_at


def append_audit_entry(draft: AuditDraft) -> AuditLogEntry:
    """Append an immutable, hash-chained audit entry.

    Concurrent writers race on (chain_id, prev_hash); the loser re-reads the chain
    head and tries again a bounded number of times.
    """

    chain_id = _chain_id(draft.company_id)
    attempts = max(1, int(getattr(settings, "AUDIT_CHAIN_RETRIES", 5)))

    for _attempt in range(attempts):
        prev_hash = (
            AuditLogEntry.all_objects.filter(chain_id=chain_id)
            .order_by("-id")
            .values_list("entry_hash", flat=True)
            .first()
            or ""
        )

        entry = AuditLogEntry(
            company_id=draft.company_id,
            actor_user_id=draft.actor_user_id,
            actor_username=draft.actor_username,
            action=draft.action,
            entity_type=draft.entity_type[:120],
            entity_id=draft.entity_id,
            previous_values=draft.previous_values,
            new_values=draft.new_values,
            ip_address=normalize_ip_address(draft.ip_address),
            user_agent=draft.user_agent,
            correlation_id=draft.correlation_id,
            request_method=draft.request_method,
            request_path=draft.request_path[:255],
            occurred_at=_entity_timestamp(draft),
            chain_id=chain_id,
            prev_hash=prev_hash,
        )
        entry.entry_hash = _build_entry_hash(_hash_payload(entry), prev_hash)

        try:
            with transaction.atomic():
                entry.save(force_insert=True)
            return entry
        except IntegrityError as exc:
            msg = str(exc)
            if "prev_hash" in msg or "uq_audit_prev_hash_per_chain" in msg or "entry_hash" in msg:
                continue
            raise

    raise AuditChainError("Failed to append audit entry (concurrency retries exhausted).")


def verify_chain(chain_id: str) -> ChainVerification:
    """Recompute every hash of a chain, oldest first."""

    prev_hash = ""
    checked = 0
    for entry in AuditLogEntry.all_objects.filter(chain_id=chain_id).order_by("id").iterator():
        expected = _build_entry_hash(_hash_payload(entry), prev_hash)
        if entry.prev_hash != prev_hash or entry.entry_hash != expected:
            logger.error(
                "audit.chain.broken chain_id=%s entry_id=%s checked=%s",
                chain_id,
                entry.id,
                checked,
            )
            return ChainVerification(chain_id=chain_id, ok=False, checked=checked, broken_entry_id=entry.id)
        prev_hash = entry.entry_hash
        checked += 1
    return ChainVerification(chain_id=chain_id, ok=True, checked=checked)


_background_executor: ThreadPoolExecutor | None = None


def _get_background_executor() -> ThreadPoolExecutor:
    global _background_executor
    if _background_executor is None:
        # One worker keeps per-entity write order.
        _background_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="audit-writer")
    return _background_executor


def _run_in_background(job: Callable[[], None]) -> None:
    def _wrapped():
        close_old_connections()
        try:
            job()
        finally:
            close_old_connections()

    _get_background_executor().submit(_wrapped)


def _run_inline(job: Callable[[], None]) -> None:
    job()


def default_dispatcher() -> Callable[[Callable[[], None]], None]:
    mode = getattr(settings, "AUDIT_WRITE_MODE", "inline")
    if mode == "background":
        return _run_in_background
    return _run_inline


class AuditRecorder:
    """Observes the outcome of a mutating operation and writes at most one entry.

    The write runs once the surrounding transaction commits (never if it rolls back)
    and is best effort: sink failures are logged, swallowed and never retried.
    """

    def __init__(
        self,
        sink: Callable[[AuditDraft], Any] | None = None,
        dispatcher: Callable[[Callable[[], None]], None] | None = None,
    ):
        self.sink = sink or append_audit_entry
        self.dispatcher = dispatcher

    def record(self, **kwargs) -> None:
        try:
            draft = build_audit_draft(**kwargs)
        except Exception:
            logger.exception(
                "audit.record.build_failed entity_type=%s",
                kwargs.get("entity_type", ""),
            )
            return
        if draft is None:
            return

        dispatcher = self.dispatcher or default_dispatcher()
        transaction.on_commit(lambda: self._dispatch(dispatcher, draft))

    def _dispatch(self, dispatcher, draft: AuditDraft) -> None:
        try:
            dispatcher(lambda: self._persist(draft))
        except Exception:
            logger.exception(
                "audit.record.dispatch_failed entity_type=%s entity_id=%s",
                draft.entity_type,
                draft.entity_id,
            )

    def _persist(self, draft: AuditDraft) -> None:
        try:
            self.sink(draft)
        except Exception:
            logger.exception(
                "audit.record.failed company_id=%s actor_user_id=%s action=%s entity_type=%s entity_id=%s correlation_id=%s",
                draft.company_id,
                draft.actor_user_id,
                draft.action,
                draft.entity_type,
                draft.entity_id,
                draft.correlation_id,
            )


def record_audit(
    actor_user_id: Optional[int],
    method_class: str,
    entity_type: str,
    entity_id=None,
    payload=None,
    result_payload=None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    **extra,
) -> None:
    AuditRecorder().record(
        actor_user_id=actor_user_id,
        method_class=method_class,
        entity_type=entity_type,
        entity_id=entity_id,
        payload=payload,
        result_payload=result_payload,
        ip_address=ip_address,
        user_agent=user_agent,
        **extra,
    )
