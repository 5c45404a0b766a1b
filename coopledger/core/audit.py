import json
import logging
from pathlib import Path
from datetime import datetime
from typing import Any, List, Optional

from coopledger.core.config import LOGS_DIR

logger = logging.getLogger(__name__)


class AuditRecorder:
    """Appends one pipe-separated line per mutation to a monthly audit file."""

    def __init__(self, logs_dir: Optional[Path] = None):
        self.logs_dir = Path(logs_dir) if logs_dir else LOGS_DIR

    def record(
        self,
        actor: str,
        action: str,
        entity_type: str,
        entity_id: Any,
        before: Optional[dict] = None,
        after: Optional[dict] = None,
    ) -> None:
        self.logs_dir.mkdir(parents=True, exist_ok=True)
        month_str = datetime.now().strftime("%Y_%m")
        log_file = self.logs_dir / f"audit_{month_str}.log"
        ts = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        before_str = json.dumps(before, default=str) if before is not None else ""
        after_str = json.dumps(after, default=str) if after is not None else ""
        with open(log_file, "a", encoding="utf-8") as f:
            f.write(f"{ts} | {actor} | {action} | {entity_type} | {entity_id} | {before_str} | {after_str}\n")


def record_audit(
    recorder: Optional[AuditRecorder],
    warnings: List[str],
    actor: str,
    action: str,
    entity_type: str,
    entity_id: Any,
    before: Optional[dict] = None,
    after: Optional[dict] = None,
) -> None:
    """Record an audit event after a successful mutation.

    A failing recorder never rolls back the financial transaction: the
    failure is logged and appended to ``warnings`` for the caller to surface.
    """
    if recorder is None:
        return
    try:
        recorder.record(actor, action, entity_type, entity_id, before, after)
    except Exception as e:
        logger.exception("Audit recording failed for %s %s %s", action, entity_type, entity_id)
        warnings.append(f"Audit recording failed for {action} on {entity_type} {entity_id}: {e}")
