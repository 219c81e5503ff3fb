"""Request orchestration for MINDSCAN.

:class:`AnalysisService` wraps the fan-out machinery with the credit
ledger.  One request makes at most one ``reserve`` before dispatch and
one ``debit`` after every backend has finished; neither runs inside
the concurrent region.

Three accounting modes follow from how the service is built and called:

* no ledger configured - results are returned in full and nothing is
  charged (local CLI use);
* ledger configured, caller identified - ``reserve`` gates admission
  and ``debit`` settles the request;
* ledger configured, anonymous caller - backends run, nothing is
  charged, and each result is reduced to a preview.

A failing debit never hides results that were already computed; it is
logged and reported as an unsettled :class:`LedgerDelta`.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, AsyncIterator, Dict, Iterable, Mapping, Optional

from pydantic import BaseModel, ConfigDict

from ..analysis.aggregator import run_all
from ..analysis.emitter import run_streaming
from ..analysis.models import AggregateOutcome, BackendResult, Completed, Done, Errored, StreamEvent
from ..analysis.preview import make_preview
from ..config import DEFAULT_MAX_ATTEMPTS, configured_backends, configured_max_attempts, llm_mode
from ..db.session import database_url, get_engine
from ..errors import AdmissionDenied, TotalFailure
from ..ledger.hook import LedgerHook, count_words, price_request
from ..ledger.models import LedgerDelta, UsageReport
from ..ledger.sql import SqlCreditLedger
from ..llm.client import BackendCapability, build_registry
from ..llm.models import AnalysisInput
from ..llm.policy import alias_for, backend_for_alias

logger = logging.getLogger(__name__)


class AnalysisReport(BaseModel):
    """Result of a blocking request."""

    model_config = ConfigDict(frozen=True)

    request_id: str
    outcome: AggregateOutcome
    original_text: Optional[str] = None
    credits: Optional[LedgerDelta] = None
    preview: bool = False

    def to_body(self) -> Dict[str, Any]:
        """Render the response object keyed by provider alias.

        Each alias maps to its result or to ``{"error": reason}``;
        ``degraded``, ``updatedCredits``, ``isPreview`` and, when
        known, ``originalText`` are added alongside.
        """
        body: Dict[str, Any] = {}
        for backend_id, entry in self.outcome.entries.items():
            if isinstance(entry, BackendResult):
                body[alias_for(backend_id)] = entry.payload
            else:
                body[alias_for(backend_id)] = {"error": entry.reason}
        body["degraded"] = [alias_for(b) for b in self.outcome.degraded()]
        body["updatedCredits"] = self.credits.model_dump() if self.credits is not None else None
        body["isPreview"] = self.preview
        if self.original_text is not None:
            body["originalText"] = self.original_text
        return body


class AnalysisService:
    """Admission, dispatch and settlement for analysis requests."""

    def __init__(
        self,
        registry: Mapping[str, BackendCapability],
        *,
        ledger: Optional[LedgerHook] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        if not registry:
            raise ValueError("At least one backend must be registered")
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self.registry = dict(registry)
        self.ledger = ledger
        self.max_attempts = max_attempts

    def _usage(self, analysis_input: AnalysisInput, dispatched: int, succeeded: int, request_id: str) -> UsageReport:
        return UsageReport(
            word_count=count_words(analysis_input.text),
            backends_dispatched=dispatched,
            backends_succeeded=succeeded,
            request_id=request_id,
        )

    def _is_preview(self, account_id: Optional[str]) -> bool:
        return self.ledger is not None and account_id is None

    async def _admit(
        self,
        analysis_input: AnalysisInput,
        account_id: Optional[str],
        request_id: str,
        dispatched: int,
    ) -> None:
        """Raise AdmissionDenied unless the request may be dispatched."""
        if self.ledger is None or account_id is None:
            return
        # Price the request as if every backend succeeds
        estimate = self._usage(analysis_input, dispatched, dispatched, request_id)
        try:
            allowed = await asyncio.to_thread(self.ledger.reserve, account_id, estimate)
        except Exception:
            logger.exception("Ledger reserve failed for account %s; denying request %s", account_id, request_id)
            allowed = False
        if not allowed:
            logger.info("Admission denied for account %s (request %s)", account_id, request_id)
            raise AdmissionDenied(required=price_request(estimate))

    async def _settle(
        self,
        analysis_input: AnalysisInput,
        account_id: Optional[str],
        request_id: str,
        dispatched: int,
        succeeded: int,
    ) -> Optional[LedgerDelta]:
        """Debit the request once; failures are logged, never raised."""
        if self.ledger is None or account_id is None:
            return None
        usage = self._usage(analysis_input, dispatched, succeeded, request_id)
        try:
            return await asyncio.to_thread(self.ledger.debit, account_id, usage)
        except Exception:
            logger.exception(
                "Ledger debit failed for account %s (request %s); results returned unsettled",
                account_id,
                request_id,
            )
            return LedgerDelta(charged=0, balance=None, settled=False)

    def _previewed(self, outcome: AggregateOutcome) -> AggregateOutcome:
        entries = {}
        for backend_id, entry in outcome.entries.items():
            if isinstance(entry, BackendResult):
                entry = entry.model_copy(update={"payload": make_preview(outcome.kind, entry.payload)})
            entries[backend_id] = entry
        return AggregateOutcome(kind=outcome.kind, entries=entries)

    def backend_for(self, alias: str) -> str:
        """Return the registered backend behind a provider alias.

        Raises:
            ValueError: If the alias is unknown or its backend is not
                configured on this service.
        """
        try:
            backend_id = backend_for_alias(alias)
        except KeyError:
            raise ValueError(f"Unknown provider '{alias}'") from None
        if backend_id not in self.registry:
            raise ValueError(f"Provider '{alias}' is not configured")
        return backend_id

    async def _run_blocking(
        self,
        analysis_input: AnalysisInput,
        registry: Mapping[str, BackendCapability],
        account_id: Optional[str],
    ) -> AnalysisReport:
        request_id = uuid.uuid4().hex
        dispatched = len(registry)
        await self._admit(analysis_input, account_id, request_id, dispatched)
        try:
            outcome = await run_all(analysis_input, registry, max_attempts=self.max_attempts)
        except TotalFailure:
            await self._settle(analysis_input, account_id, request_id, dispatched, 0)
            raise
        credits = await self._settle(
            analysis_input, account_id, request_id, dispatched, len(outcome.successes())
        )
        preview = self._is_preview(account_id)
        if preview:
            outcome = self._previewed(outcome)
        return AnalysisReport(
            request_id=request_id,
            outcome=outcome,
            credits=credits,
            preview=preview,
            original_text=analysis_input.text,
        )

    async def analyze(
        self,
        analysis_input: AnalysisInput,
        *,
        account_id: Optional[str] = None,
    ) -> AnalysisReport:
        """Run a blocking request against every registered backend.

        Raises:
            AdmissionDenied: If the ledger refuses the request; no
                backend is called.
            TotalFailure: If every backend failed.  The request is
                settled (at zero cost) before this is raised.
        """
        return await self._run_blocking(analysis_input, self.registry, account_id)

    async def analyze_one(
        self,
        analysis_input: AnalysisInput,
        alias: str,
        *,
        account_id: Optional[str] = None,
    ) -> AnalysisReport:
        """Run a blocking request against the single backend behind ``alias``.

        Admission, settlement and previews work as in :meth:`analyze`;
        the report holds one entry.

        Raises:
            ValueError: If ``alias`` does not name a configured backend.
            AdmissionDenied: If the ledger refuses the request.
            TotalFailure: If the backend failed.
        """
        backend_id = self.backend_for(alias)
        try:
            return await self._run_blocking(
                analysis_input, {backend_id: self.registry[backend_id]}, account_id
            )
        except TotalFailure as exc:
            # Carry the backend's own reason
            reason = exc.outcome.failures()[backend_id].reason
            raise TotalFailure(exc.outcome, message=reason) from exc

    async def stream(
        self,
        analysis_input: AnalysisInput,
        *,
        account_id: Optional[str] = None,
    ) -> AsyncIterator[StreamEvent]:
        """Run a streaming request.

        Yields completion-ordered backend events and a final ``Done``.
        A denied admission yields one request-level ``Errored`` event
        and ``Done`` without dispatching anything.
        """
        request_id = uuid.uuid4().hex
        try:
            await self._admit(analysis_input, account_id, request_id, len(self.registry))
        except AdmissionDenied as exc:
            yield Errored(backend=None, reason=exc.reason)
            yield Done(updated_credits=None)
            return

        async def settle(dispatched: int, succeeded: int) -> Optional[LedgerDelta]:
            return await self._settle(analysis_input, account_id, request_id, dispatched, succeeded)

        preview = self._is_preview(account_id)
        events = run_streaming(
            analysis_input,
            self.registry,
            max_attempts=self.max_attempts,
            settle=settle,
        )
        try:
            async for event in events:
                if preview and isinstance(event, Completed):
                    event = event.model_copy(update={"result": make_preview(analysis_input.kind, event.result)})
                yield event
        finally:
            await events.aclose()


def service_from_env(
    *,
    mode: Optional[str] = None,
    backends: Optional[Iterable[str]] = None,
    max_attempts: Optional[int] = None,
    url: Optional[str] = None,
    with_ledger: bool = True,
) -> AnalysisService:
    """Build a service from explicit arguments or the environment.

    The backend mode defaults to ``LLM_MODE``, the backend set to
    ``MINDSCAN_BACKENDS`` and the attempt bound to
    ``MINDSCAN_MAX_ATTEMPTS``.  Unless ``with_ledger`` is False a
    :class:`SqlCreditLedger` is attached when a database URL is given or
    ``DATABASE_URL`` is set.
    """
    registry = build_registry(mode or llm_mode(), backends or configured_backends())
    url = (url or database_url()) if with_ledger else None
    ledger = SqlCreditLedger(get_engine(url)) if url else None
    attempts = max_attempts if max_attempts is not None else configured_max_attempts()
    logger.info(
        "Analysis service: backends=%s ledger=%s max_attempts=%d",
        ",".join(registry),
        "sql" if ledger is not None else "none",
        attempts,
    )
    return AnalysisService(registry, ledger=ledger, max_attempts=attempts)
