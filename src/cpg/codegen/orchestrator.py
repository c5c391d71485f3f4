# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Component code resolution across lexicon, providers and fallback."""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Collection, Sequence

from cpg.codegen.fallback import generate_fallback_code
from cpg.codegen.health import ProviderHealthRegistry
from cpg.codegen.lexicon import Lexicon
from cpg.codegen.providers import Completion, Provider, build_prompt, code_from_completion
from cpg.config import ChainSettings
from cpg.errors import AuthError, ParseError, ProviderError, is_rate_limit
from cpg.model import CodeResult, ProviderTelemetry

logger = logging.getLogger(__name__)

LEXICON_EXACT: str = "Lexicon (Exact Match)"
LEXICON_FUZZY: str = "Lexicon (Fuzzy Match)"
FALLBACK: str = "Fallback Algorithm"
PROVIDER_CONFIDENCE: float = 0.8
FALLBACK_CONFIDENCE: float = 0.6
PROBE_PROMPT: str = 'Generate a 4-character code for "Motor". Return only the code, nothing else.'
BENCHMARK_SAMPLE_SIZE: int = 5
BENCHMARK_PAUSE_SECONDS: float = 0.5

TelemetrySink = Callable[[ProviderTelemetry], None]


@dataclass(frozen=True)
class ProviderStatus:
    """Represent the current health of one provider."""

    name: str
    model_id: str
    available: bool
    request_count: int
    max_requests: int
    consecutive_failures: int
    circuit_breaker_active: bool
    wait_time_ms: int


@dataclass(frozen=True)
class ProbeResult:
    """Represent the outcome of a provider connectivity probe."""

    success: bool
    message: str
    provider_name: str | None = None
    response: str | None = None


@dataclass(frozen=True)
class ProviderBenchmark:
    """Summarize one provider's run over a sample of component names.

    Attributes:
        name: Provider display name.
        model_id: Provider model identifier.
        average_response_time_ms: Mean latency of successful calls.
        success_rate: Successful calls over the sample size.
        accuracy: Share of successful calls matching the lexicon code.
    """

    name: str
    model_id: str
    average_response_time_ms: float
    success_rate: float
    accuracy: float


class ComponentCodeOrchestrator:
    """Resolve four-character object part codes for component names.

    Calls must not overlap: every call reads and extends the caller's set of
    issued codes, so callers generate one component at a time.
    """

    def __init__(
        self,
        providers: Sequence[Provider],
        health: ProviderHealthRegistry,
        lexicon: Lexicon | None = None,
        chain: ChainSettings | None = None,
        sleeper: Callable[[float], None] = time.sleep,
        timer: Callable[[], float] = time.monotonic,
        telemetry_sink: TelemetrySink | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            providers: Providers in priority order.
            health: Shared provider health registry.
            lexicon: Curated component lexicon.
            chain: Retry and wait behaviour.
            sleeper: Sleep function used for backoff and waits.
            timer: Monotonic clock used for latency.
            telemetry_sink: Receiver of successful provider generations.
        """
        self._providers = list(providers)
        self._health = health
        self._lexicon = lexicon or Lexicon()
        self._chain = chain or ChainSettings()
        self._sleeper = sleeper
        self._timer = timer
        self._telemetry_sink = telemetry_sink
        self._disabled: set[str] = set()

    @property
    def lexicon(self) -> Lexicon:
        """Return the lexicon consulted before any provider."""
        return self._lexicon

    def generate(self, component_name: str, issued_codes: Collection[str]) -> CodeResult:
        """Resolve a code for one component.

        Args:
            component_name: Component to encode.
            issued_codes: Codes already handed out in this library.

        Returns:
            The resolved code. Lexicon exact matches are returned as-is even
            when the code was already issued; every other source returns a
            code outside ``issued_codes``.
        """
        started = self._timer()

        exact = self._lexicon.exact(component_name)
        if exact is not None:
            return self._result(exact.entry.object_part_code, LEXICON_EXACT, started, 1.0)

        fuzzy = self._lexicon.fuzzy(component_name)
        if fuzzy is not None:
            if fuzzy.entry.object_part_code not in issued_codes:
                return self._result(
                    fuzzy.entry.object_part_code, LEXICON_FUZZY, started, fuzzy.confidence
                )
            logger.debug(
                f"Fuzzy lexicon code already issued (component={component_name!r} "
                f"match={fuzzy.entry.component_name!r} code={fuzzy.entry.object_part_code})"
            )

        prompt = build_prompt(component_name, issued_codes, self._lexicon)
        active = [p for p in self._providers if p.model_id not in self._disabled]
        usable = [p for p in active if self._health.can_use(p.model_id, p.rate_limit_per_minute)]
        limited = [p for p in active if p not in usable]
        logger.debug(
            f"Provider availability (component={component_name!r} "
            f"usable={len(usable)} limited={len(limited)})"
        )

        for provider in usable:
            code = self._attempt(provider, prompt, component_name, issued_codes, started)
            if code is not None:
                return self._result(code, provider.name, started, PROVIDER_CONFIDENCE)

        for provider in limited:
            if provider.model_id in self._disabled:
                continue
            wait = self._health.wait_time(provider.model_id)
            if wait > self._chain.max_wait_seconds:
                logger.info(
                    f"Skipping rate-limited provider (provider={provider.name} wait={wait:.0f}s)"
                )
                continue
            if wait > 0:
                logger.info(
                    f"Waiting for provider reset (provider={provider.name} wait={wait:.0f}s)"
                )
                self._sleeper(wait + self._chain.wait_buffer_seconds)
            if not self._health.can_use(provider.model_id, provider.rate_limit_per_minute):
                continue
            code = self._attempt(provider, prompt, component_name, issued_codes, started)
            if code is not None:
                return self._result(code, provider.name, started, PROVIDER_CONFIDENCE)

        code = generate_fallback_code(component_name, issued_codes)
        logger.info(f"Fallback code generated (component={component_name!r} code={code})")
        return self._result(code, FALLBACK, started, FALLBACK_CONFIDENCE)

    def call_with_retry(
        self, provider: Provider, prompt: str, max_attempts: int | None = None
    ) -> Completion:
        """Call a provider, backing off only on rate-limit failures.

        Args:
            provider: Provider to call.
            prompt: Prompt text.
            max_attempts: Attempt budget; defaults to the chain setting.

        Returns:
            Provider completion.

        Raises:
            ProviderError: The last failure once retries stop.
        """
        attempts = max_attempts or self._chain.max_attempts
        for attempt in range(1, attempts + 1):
            try:
                return provider.complete(prompt)
            except AuthError:
                raise
            except ProviderError as exc:
                if not is_rate_limit(exc) or attempt == attempts:
                    raise
                delay = self._chain.backoff(attempt)
                logger.info(
                    f"Rate limited, backing off (provider={provider.name} "
                    f"attempt={attempt}/{attempts} delay={delay:.0f}s)"
                )
                self._sleeper(delay)
        raise ProviderError(f"{provider.name} was called with no attempts")

    def provider_status(self) -> list[ProviderStatus]:
        """Return a health snapshot of every configured provider."""
        statuses: list[ProviderStatus] = []
        for provider in self._providers:
            available = (
                provider.model_id not in self._disabled
                and self._health.is_available(provider.model_id, provider.rate_limit_per_minute)
            )
            state = self._health.snapshot(provider.model_id)
            wait = self._health.wait_time(provider.model_id)
            statuses.append(
                ProviderStatus(
                    name=provider.name,
                    model_id=provider.model_id,
                    available=available,
                    request_count=state.request_count if state else 0,
                    max_requests=self._health.safe_limit(provider.rate_limit_per_minute),
                    consecutive_failures=state.consecutive_failures if state else 0,
                    circuit_breaker_active=self._health.breaker_open(provider.model_id),
                    wait_time_ms=int(wait * 1000),
                )
            )
        return statuses

    def probe_providers(self) -> ProbeResult:
        """Check connectivity with the first provider that answers.

        Returns:
            Probe outcome naming the provider that responded, or the last error.
        """
        last_error: ProviderError | None = None
        for provider in self._providers:
            if not self._health.can_use(provider.model_id, provider.rate_limit_per_minute):
                logger.info(f"Probe skipped rate-limited provider (provider={provider.name})")
                continue
            self._health.mark_used(provider.model_id)
            try:
                completion = self.call_with_retry(provider, PROBE_PROMPT, max_attempts=2)
            except ProviderError as exc:
                self._health.mark_failed(provider.model_id, is_rate_limit(exc))
                logger.warning(f"Probe failed (provider={provider.name} error={exc})")
                last_error = exc
                continue
            text = (completion.content or completion.reasoning or "").strip()
            if text:
                self._health.mark_success(provider.model_id)
                return ProbeResult(
                    success=True,
                    message=f"Connection successful using {provider.name}",
                    provider_name=provider.name,
                    response=text,
                )
        message = str(last_error) if last_error else "No provider was available"
        return ProbeResult(success=False, message=message)

    def benchmark_providers(self, component_names: Sequence[str]) -> list[ProviderBenchmark]:
        """Compare providers on the first few component names.

        Every provider gets one attempt per name. Names are skipped while the
        provider is rate limited, and the skips count against its success
        rate. Accuracy compares each code with the lexicon's exact match.

        Args:
            component_names: Names to send; only the first five are used.

        Returns:
            One benchmark per configured provider, in chain order.
        """
        sample = list(component_names[:BENCHMARK_SAMPLE_SIZE])
        results: list[ProviderBenchmark] = []
        for provider in self._providers:
            logger.info(
                f"Benchmarking provider (provider={provider.name} components={len(sample)})"
            )
            total_ms = 0
            successes = 0
            accurate = 0
            for component_name in sample:
                if not self._health.can_use(provider.model_id, provider.rate_limit_per_minute):
                    logger.info(
                        f"Benchmark skipped rate-limited provider (provider={provider.name} "
                        f"component={component_name!r})"
                    )
                    continue
                self._health.mark_used(provider.model_id)
                started = self._timer()
                try:
                    completion = self.call_with_retry(
                        provider, build_prompt(component_name, (), self._lexicon), max_attempts=1
                    )
                    code = code_from_completion(completion, component_name, provider.name)
                except ProviderError as exc:
                    self._health.mark_failed(provider.model_id, is_rate_limit(exc))
                    logger.warning(
                        f"Benchmark call failed (provider={provider.name} "
                        f"component={component_name!r} error={exc})"
                    )
                    continue
                self._health.mark_success(provider.model_id)
                total_ms += int((self._timer() - started) * 1000)
                successes += 1
                expected = self._lexicon.exact(component_name)
                if expected is not None and expected.entry.object_part_code == code:
                    accurate += 1
                self._sleeper(BENCHMARK_PAUSE_SECONDS)
            results.append(
                ProviderBenchmark(
                    name=provider.name,
                    model_id=provider.model_id,
                    average_response_time_ms=total_ms / successes if successes else 0.0,
                    success_rate=successes / len(sample) if sample else 0.0,
                    accuracy=accurate / successes if successes else 0.0,
                )
            )
        return results

    def _attempt(
        self,
        provider: Provider,
        prompt: str,
        component_name: str,
        issued_codes: Collection[str],
        started: float,
    ) -> str | None:
        """Run one provider through retries, parsing and health bookkeeping."""
        self._health.mark_used(provider.model_id)
        try:
            completion = self.call_with_retry(provider, prompt)
            code = code_from_completion(completion, component_name, provider.name)
            if len(code) != 4 or code in issued_codes:
                raise ParseError(f"{provider.name} returned an unusable code: {code}")
        except AuthError as exc:
            self._disabled.add(provider.model_id)
            self._health.mark_failed(provider.model_id, is_rate_limit=False)
            logger.warning(
                f"Provider disabled for this run (provider={provider.name} error={exc})"
            )
            return None
        except ProviderError as exc:
            rate_limited = is_rate_limit(exc)
            self._health.mark_failed(provider.model_id, is_rate_limit=rate_limited)
            logger.warning(
                f"Provider failed (provider={provider.name} rate_limited={rate_limited} "
                f"error={exc})"
            )
            return None

        self._health.mark_success(provider.model_id)
        elapsed_ms = int((self._timer() - started) * 1000)
        logger.info(
            f"Provider generated code (provider={provider.name} "
            f"component={component_name!r} code={code} latency_ms={elapsed_ms})"
        )
        if self._telemetry_sink is not None:
            self._telemetry_sink(
                ProviderTelemetry(
                    model_name=provider.name,
                    component_name=component_name,
                    generated_code=code,
                    response_time_ms=elapsed_ms,
                    created_at=datetime.now(tz=timezone.utc).isoformat(),
                )
            )
        return code

    def _result(
        self, code: str, model_used: str, started: float, confidence: float
    ) -> CodeResult:
        return CodeResult(
            code=code,
            model_used=model_used,
            response_time_ms=int((self._timer() - started) * 1000),
            confidence=confidence,
        )
