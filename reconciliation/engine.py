"""Return file lifecycle.

Exposes high-level entry point:
- ReturnFileProcessor.run_pass() -> ReturnPassResult

One pass walks the pending-returns directory, applies every PickReturn and
PurchaseReturn file to the ERP, and decides what happens to each file:

- every order applied, or only permanent failures -> file deleted
- any transient failure (ERP unreachable, timeout) -> file kept for next tick
- an unexpected error while processing the file -> file kept for next tick
- InventoryReturn, unknown document types, unreadable files -> left untouched

Deleting the file is the only record that it was processed. It happens
after the ERP updates succeeded, so a crash in between re-applies the file
on the next pass; quantities are rebuilt from zero on every fresh fetch, so
the re-push carries the same values.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from connectors.erp_base import ERPConnector
from core.config import AppConfig, OrderStatusConfig
from core.observability import (
    get_logger,
    record_file_disposition,
    record_order_outcome,
    record_processing_time,
    with_correlation,
)
from core.storage import ExchangeDirectory
from reconciliation.matcher import match_records
from reconciliation.order_cache import OrderCache
from reconciliation.return_documents import (
    ReturnDocumentType,
    ReturnFileError,
    read_return_document,
)
from reconciliation.transitions import (
    OrderOutcome,
    OrderState,
    StatusTransitionDriver,
    policy_for,
)

logger = get_logger(__name__)


# =============================================================================
# Results
# =============================================================================

class FileDisposition(str, Enum):
    DELETED = "DELETED"
    RETAINED = "RETAINED"     # transient failure, retried next pass
    UNTOUCHED = "UNTOUCHED"   # not something this system reconciles


@dataclass
class FileOutcome:
    """What happened to one return file."""
    filename: str
    disposition: FileDisposition
    document_type: Optional[ReturnDocumentType] = None
    orders: List[OrderOutcome] = field(default_factory=list)
    skipped_records: int = 0
    reason: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "filename": self.filename,
            "disposition": self.disposition.value,
            "document_type": self.document_type.value if self.document_type else None,
            "orders": [o.to_dict() for o in self.orders],
            "skipped_records": self.skipped_records,
            "reason": self.reason,
        }


@dataclass
class ReturnPassResult:
    """Summary of one pass over the pending-returns directory."""
    pass_id: str
    files: List[FileOutcome] = field(default_factory=list)
    orders_fetched: int = 0
    skipped: bool = False  # another pass was still running

    def count(self, disposition: FileDisposition) -> int:
        return sum(1 for f in self.files if f.disposition == disposition)

    def to_dict(self) -> Dict:
        return {
            "pass_id": self.pass_id,
            "skipped": self.skipped,
            "orders_fetched": self.orders_fetched,
            "files": [f.to_dict() for f in self.files],
            "summary": {d.value: self.count(d) for d in FileDisposition},
        }


# =============================================================================
# Disposition
# =============================================================================

def decide_disposition(outcomes: List[OrderOutcome]) -> FileDisposition:
    """Keep the file if anything might succeed on retry, otherwise drop it."""
    if any(o.is_transient_failure for o in outcomes):
        return FileDisposition.RETAINED
    return FileDisposition.DELETED


# =============================================================================
# Processor
# =============================================================================

class ReturnFileProcessor:
    """Applies pending WMS return files to the ERP.

    Passes never overlap within a process: a pass started while another is
    still running returns immediately with `skipped=True`.

    Usage:
        processor = ReturnFileProcessor.from_app_config(erp, config)
        result = await processor.run_pass()
    """

    _running = False

    def __init__(
        self,
        erp: ERPConnector,
        results: ExchangeDirectory,
        confirmations: ExchangeDirectory,
        statuses: OrderStatusConfig,
    ):
        self.erp = erp
        self.results = results
        self.confirmations = confirmations
        self.statuses = statuses

    @classmethod
    def from_app_config(cls, erp: ERPConnector, config: AppConfig) -> "ReturnFileProcessor":
        return cls(
            erp=erp,
            results=ExchangeDirectory(config.directories.results),
            confirmations=ExchangeDirectory(config.directories.confirmations),
            statuses=config.order_statuses,
        )

    async def run_pass(self) -> ReturnPassResult:
        pass_id = f"returns-{datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%S%f')}"
        result = ReturnPassResult(pass_id=pass_id)

        if ReturnFileProcessor._running:
            logger.warning("Previous return file pass still running, skipping this tick")
            result.skipped = True
            return result

        ReturnFileProcessor._running = True
        try:
            with with_correlation(pass_id=pass_id, job="returns"):
                cache = OrderCache(self.erp)
                driver = StatusTransitionDriver(self.erp, self.statuses, self.confirmations)

                for path in self.results.list_pending():
                    started = time.monotonic()
                    with with_correlation(return_file=path.name):
                        try:
                            outcome = await self.process_file(path, cache, driver)
                        except Exception as e:
                            logger.exception(f"Unexpected error processing {path.name}, keeping it for the next pass")
                            outcome = FileOutcome(path.name, FileDisposition.RETAINED, reason=f"unexpected error: {e}")
                    record_processing_time("returns.file", (time.monotonic() - started) * 1000)
                    record_file_disposition(outcome.disposition.value)
                    result.files.append(outcome)

                result.orders_fetched = cache.fetch_count
        finally:
            ReturnFileProcessor._running = False

        if result.files:
            logger.info(
                f"Return pass {pass_id}: {len(result.files)} files, "
                f"{result.count(FileDisposition.DELETED)} deleted, "
                f"{result.count(FileDisposition.RETAINED)} retained, "
                f"{result.count(FileDisposition.UNTOUCHED)} untouched"
            )
        return result

    async def process_file(self, path: Path, cache: OrderCache, driver: StatusTransitionDriver) -> FileOutcome:
        logger.info(f"Parsing return file {path.name}")

        try:
            document = read_return_document(path)
        except ReturnFileError as e:
            logger.error(f"Unreadable return file {path.name}, leaving it in place: {e}")
            return FileOutcome(path.name, FileDisposition.UNTOUCHED, reason=str(e))
        except OSError as e:
            logger.error(f"Unable to read return file {path.name}: {e}")
            return FileOutcome(path.name, FileDisposition.UNTOUCHED, reason=str(e))

        doc_type = document.document_type
        if doc_type == ReturnDocumentType.INVENTORY_RETURN:
            logger.error("Return type: Inventory. Inventory update not yet supported.")
            return FileOutcome(path.name, FileDisposition.UNTOUCHED, doc_type, reason="inventory returns not supported")
        if doc_type == ReturnDocumentType.UNKNOWN:
            logger.warning(f"Unknown return type {document.tag!r} in {path.name}")
            return FileOutcome(path.name, FileDisposition.UNTOUCHED, doc_type, reason=f"unknown return type {document.tag!r}")

        logger.debug(f"Return type: {doc_type.value}, {len(document.records)} records")
        policy = policy_for(doc_type)
        matches = await match_records(document.records, cache)

        outcomes: List[OrderOutcome] = []
        for label, error in matches.failures.items():
            outcomes.append(OrderOutcome(order_number=label, state=OrderState.FAILED, error=error))
            record_order_outcome(OrderState.FAILED.value)

        for matched in matches.matched.values():
            with with_correlation(order_number=str(matched.ref), order_kind=matched.order.kind.value):
                outcomes.append(await driver.apply(matched, policy))

        outcome = FileOutcome(
            filename=path.name,
            disposition=decide_disposition(outcomes),
            document_type=doc_type,
            orders=outcomes,
            skipped_records=len(matches.skipped),
        )

        failed = [o for o in outcomes if o.state == OrderState.FAILED]
        if outcome.disposition == FileDisposition.RETAINED:
            transient = [o.order_number for o in failed if o.is_transient_failure]
            outcome.reason = f"transient failure on {', '.join(transient)}"
            logger.error(f"Keeping {path.name} for the next pass: {outcome.reason}")
            return outcome

        if failed:
            outcome.reason = "; ".join(f"{o.order_number}: {o.error}" for o in failed)
            logger.error(f"Discarding {path.name} with permanent failures: {outcome.reason}")

        try:
            self.results.delete(path)
        except OSError as e:
            logger.error(f"Unable to delete processed return file {path.name}: {e}")
            outcome.disposition = FileDisposition.RETAINED
            outcome.reason = str(e)
            return outcome

        logger.info(f"Deleted return file {path.name}")
        return outcome
