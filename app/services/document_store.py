"""
In-memory holder of the single current document.

Usage
-----
    from app.services.document_store import document_store

    state = document_store.apply(lambda doc: remove_section(doc, 2), expected_version=7)

    token = document_store.begin_request("generate")
    try:
        document = await producer.generate(prompt)
    except GenerationError:
        document_store.fail_request(token, "Could not generate ...")
        raise
    document_store.complete_request(token, document)

Edits replace the whole document and bump ``version``. At most one producer
request may be in flight; its result is applied only if no other change
happened since it started.
"""
from __future__ import annotations

import dataclasses
import itertools
import logging
import time
from typing import Callable, Optional

from app.config import settings
from app.data.templates import seed_document
from app.models.schemas import Document

logger = logging.getLogger(__name__)


class ProducerBusyError(RuntimeError):
    """A generate/optimize request is already in flight."""


# ---------------------------------------------------------------------------
# Snapshots and request tokens
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class DocumentState:
    document: Document
    version: int
    busy: bool = False
    error: Optional[str] = None


@dataclasses.dataclass(frozen=True)
class RequestToken:
    request_id: int
    kind: str
    base_version: int
    started_at: float = dataclasses.field(default_factory=time.monotonic)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class DocumentStore:
    """Single-writer store for the current document."""

    def __init__(self, document: Document) -> None:
        self._document = document
        self._version = 0
        self._pending: Optional[RequestToken] = None
        self._last_error: Optional[str] = None
        self._request_ids = itertools.count(1)

    @property
    def document(self) -> Document:
        return self._document

    @property
    def version(self) -> int:
        return self._version

    @property
    def busy(self) -> bool:
        return self._pending is not None

    def snapshot(self) -> DocumentState:
        return DocumentState(
            document=self._document,
            version=self._version,
            busy=self.busy,
            error=self._last_error,
        )

    # ------------------------------------------------------------------
    # Synchronous edits
    # ------------------------------------------------------------------

    def replace(self, document: Document) -> DocumentState:
        """Make *document* the current document (seed, template, direct put)."""
        self._set(document)
        self._last_error = None
        return self.snapshot()

    def reset(self, document: Document) -> DocumentState:
        """
        Restore *document* and forget the last error.

        A request still in flight stays pending, so no second one can start
        before it returns; its result is then discarded by version.
        """
        self._last_error = None
        self._set(document)
        return self.snapshot()

    def apply(
        self,
        edit: Callable[[Document], Document],
        expected_version: Optional[int] = None,
    ) -> DocumentState:
        """
        Run *edit* against the current document and store its result.

        If *expected_version* is given and is not the current version, the
        edit was computed from a superseded render and is ignored. An
        ``IndexError`` from the edit (a stale index) is ignored as well.
        """
        if expected_version is not None and expected_version != self._version:
            logger.info(
                "Stale edit ignored: based on version %d, current is %d",
                expected_version,
                self._version,
            )
            return self.snapshot()

        try:
            updated = edit(self._document)
        except IndexError as exc:
            logger.info("Stale index ignored: %s", exc)
            return self.snapshot()

        if updated is not self._document:
            self._set(updated)
        return self.snapshot()

    # ------------------------------------------------------------------
    # Producer requests
    # ------------------------------------------------------------------

    def begin_request(self, kind: str) -> RequestToken:
        """
        Register a generate/optimize request.

        Raises:
            ProducerBusyError: another request is still in flight.
        """
        if self._pending is not None:
            raise ProducerBusyError(
                f"A {self._pending.kind} request is already in progress"
            )
        token = RequestToken(
            request_id=next(self._request_ids),
            kind=kind,
            base_version=self._version,
        )
        self._pending = token
        self._last_error = None
        logger.info("Producer request #%d (%s) started", token.request_id, kind)
        return token

    def complete_request(self, token: RequestToken, document: Document) -> bool:
        """
        Apply a producer result. Returns False when the result was discarded.

        The result is discarded if *token* is no longer the pending request
        or if the document changed after the request started.
        """
        is_latest = self._pending is not None and self._pending.request_id == token.request_id
        if is_latest:
            self._pending = None

        if not is_latest or self._version != token.base_version:
            logger.warning(
                "Discarding stale %s result #%d (base version %d, current %d)",
                token.kind,
                token.request_id,
                token.base_version,
                self._version,
            )
            return False

        self._set(document)
        logger.info(
            "Producer request #%d (%s) applied in %.2fs",
            token.request_id,
            token.kind,
            time.monotonic() - token.started_at,
        )
        return True

    def fail_request(self, token: RequestToken, message: str) -> None:
        """Release the busy state and record a user-facing error message."""
        if self._pending is not None and self._pending.request_id == token.request_id:
            self._pending = None
            self._last_error = message
        logger.warning("Producer request #%d (%s) failed", token.request_id, token.kind)

    def _set(self, document: Document) -> None:
        self._document = document
        self._version += 1


# Module-level singleton instance
document_store = DocumentStore(seed_document(settings.DEFAULT_TEMPLATE_ID))
