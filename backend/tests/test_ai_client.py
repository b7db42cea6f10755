"""Tests for ResilientGenerationClient retry, fallback and breaker behavior."""

import asyncio
import unittest

import httpx

from fakes import ProviderBook, RecordingSleep, bad_request, rate_limited
from insight_api.services.ai.common.breaker import CircuitBreaker
from insight_api.services.ai.common.client import (
    Candidate,
    GenerationExhausted,
    GenerationRequest,
    GenerationSuccess,
    GenerationUnparsable,
    ResilientGenerationClient,
    RetryPolicy,
    raise_for_outcome,
)
from insight_api.services.ai.common.errors import AIGenerationError, ErrorKind, ProviderCallError
from insight_api.services.ai.common.json_tools import OutputShape

A = Candidate("gemini", "gemini-flash-latest", api_key="ka")
B = Candidate("openrouter", "meta-llama/llama-3.3-70b-instruct:free", api_key="kb")


class _ClientTestBase(unittest.TestCase):
    def make_client(self, book, *, breaker=None, policy=None):
        self.sleep = RecordingSleep()
        return ResilientGenerationClient(
            scope="test",
            policy=policy or RetryPolicy(),
            breaker=breaker,
            provider_factory=book,
            sleep=self.sleep,
            clock=lambda: 1000.0,
            rng=lambda: 0.0,
        )

    def run_request(self, client, candidates, **kwargs):
        request = GenerationRequest(prompt="Explain recursion", candidates=candidates, **kwargs)
        return asyncio.run(client.generate(request))


class FallbackTests(_ClientTestBase):
    def test_rate_limited_first_candidate_falls_back_after_all_retries(self):
        book = ProviderBook(gemini=[rate_limited()], openrouter=["answer from B"])
        client = self.make_client(book)

        outcome = self.run_request(client, [A, B], max_retries_per_candidate=3)

        self.assertIsInstance(outcome, GenerationSuccess)
        self.assertEqual(outcome.payload, "answer from B")
        self.assertEqual(outcome.provider, "openrouter")
        self.assertTrue(outcome.fallback_used)
        self.assertEqual(book["gemini"].calls, 3)
        self.assertEqual(book["openrouter"].calls, 1)
        # Exponential backoff between the three attempts on A, none after the last.
        self.assertEqual(self.sleep.delays, [2.0, 4.0])
        self.assertEqual([a.kind for a in outcome.attempts], [ErrorKind.RATE_LIMITED] * 3 + [None])

    def test_first_candidate_success_is_not_fallback(self):
        book = ProviderBook(gemini=["hello"], openrouter=["unused"])
        outcome = self.run_request(self.make_client(book), [A, B])

        self.assertIsInstance(outcome, GenerationSuccess)
        self.assertFalse(outcome.fallback_used)
        self.assertEqual(book["openrouter"].calls, 0)

    def test_candidates_tried_in_order_with_their_keys(self):
        book = ProviderBook(gemini=[bad_request()], openrouter=["ok"])
        self.run_request(self.make_client(book), [A, B])
        self.assertEqual(book.created, [("gemini", "ka"), ("openrouter", "kb")])

    def test_bad_request_and_not_found_never_retried(self):
        not_found = ProviderCallError("model not found", status_code=404)
        book = ProviderBook(gemini=[bad_request()], openrouter=[not_found])

        outcome = self.run_request(self.make_client(book), [A, B], max_retries_per_candidate=5)

        self.assertIsInstance(outcome, GenerationExhausted)
        self.assertEqual(book["gemini"].calls, 1)
        self.assertEqual(book["openrouter"].calls, 1)
        self.assertEqual(outcome.last_error_kind, ErrorKind.NOT_FOUND)
        self.assertEqual(self.sleep.delays, [])

    def test_timeout_retried_once(self):
        timeout = ProviderCallError("gemini request timed out after 60s", kind=ErrorKind.TIMEOUT)
        book = ProviderBook(gemini=[timeout])

        outcome = self.run_request(self.make_client(book), [A], max_retries_per_candidate=5)

        self.assertEqual(book["gemini"].calls, 2)
        self.assertEqual(outcome.last_error_kind, ErrorKind.TIMEOUT)

    def test_overloaded_uses_transient_budget(self):
        overloaded = ProviderCallError("The model is overloaded", status_code=503)
        book = ProviderBook(gemini=[overloaded, "recovered"])

        outcome = self.run_request(self.make_client(book), [A], max_retries_per_candidate=5)

        self.assertIsInstance(outcome, GenerationSuccess)
        self.assertEqual(book["gemini"].calls, 2)
        self.assertEqual(self.sleep.delays, [2.0])

    def test_raw_httpx_transport_error_is_retried(self):
        book = ProviderBook(gemini=[httpx.ConnectError("connection refused"), "ok"])
        outcome = self.run_request(self.make_client(book), [A])

        self.assertIsInstance(outcome, GenerationSuccess)
        self.assertEqual(outcome.attempts[0].kind, ErrorKind.TRANSPORT)

    def test_unknown_error_advances_without_retry(self):
        book = ProviderBook(gemini=[ProviderCallError("Empty content in Gemini response")], openrouter=["ok"])
        outcome = self.run_request(self.make_client(book), [A, B])

        self.assertIsInstance(outcome, GenerationSuccess)
        self.assertEqual(book["gemini"].calls, 1)

    def test_backoff_is_capped(self):
        policy = RetryPolicy(backoff_cap_seconds=5.0)
        book = ProviderBook(gemini=[rate_limited()])
        self.run_request(self.make_client(book, policy=policy), [A], max_retries_per_candidate=5)
        self.assertEqual(self.sleep.delays, [2.0, 4.0, 5.0, 5.0])


class RetryAfterTests(_ClientTestBase):
    def test_provider_retry_after_takes_precedence(self):
        book = ProviderBook(gemini=[rate_limited(retry_after=13)])
        outcome = self.run_request(self.make_client(book), [A], max_retries_per_candidate=3)

        self.assertEqual(self.sleep.delays, [13.0, 13.0])
        self.assertEqual(outcome.retry_after_seconds, 13)

    def test_retry_after_over_limit_stops_candidate(self):
        book = ProviderBook(gemini=[rate_limited(retry_after=3600)], openrouter=["ok"])
        outcome = self.run_request(self.make_client(book), [A, B], max_retries_per_candidate=3)

        self.assertIsInstance(outcome, GenerationSuccess)
        self.assertEqual(book["gemini"].calls, 1)
        self.assertEqual(self.sleep.delays, [])

    def test_default_retry_after_when_provider_gives_none(self):
        book = ProviderBook(gemini=[rate_limited()])
        outcome = self.run_request(self.make_client(book), [A], max_retries_per_candidate=1)
        self.assertEqual(outcome.retry_after_seconds, 30)

    def test_largest_provider_retry_after_wins(self):
        book = ProviderBook(gemini=[rate_limited(retry_after=5)], openrouter=[rate_limited(retry_after=40)])
        outcome = self.run_request(self.make_client(book), [A, B], max_retries_per_candidate=1)
        self.assertEqual(outcome.retry_after_seconds, 40)


class ExhaustedTests(_ClientTestBase):
    def test_all_rate_limited(self):
        book = ProviderBook(gemini=[rate_limited()], openrouter=[rate_limited()])
        outcome = self.run_request(self.make_client(book), [A, B], max_retries_per_candidate=2)

        self.assertIsInstance(outcome, GenerationExhausted)
        self.assertTrue(outcome.all_rate_limited)
        self.assertEqual(outcome.last_error_kind, ErrorKind.RATE_LIMITED)
        self.assertEqual(len(outcome.attempts), 4)

    def test_one_bad_request_clears_all_rate_limited(self):
        book = ProviderBook(gemini=[rate_limited()], openrouter=[bad_request()])
        outcome = self.run_request(self.make_client(book), [A, B], max_retries_per_candidate=2)

        self.assertFalse(outcome.all_rate_limited)
        self.assertEqual(outcome.last_error_kind, ErrorKind.BAD_REQUEST)

    def test_empty_prompt_is_a_contract_violation(self):
        client = self.make_client(ProviderBook(gemini=["x"]))
        with self.assertRaises(ValueError):
            asyncio.run(client.generate(GenerationRequest(prompt="  ", candidates=[A])))

    def test_empty_candidates_is_a_contract_violation(self):
        client = self.make_client(ProviderBook(gemini=["x"]))
        with self.assertRaises(ValueError):
            asyncio.run(client.generate(GenerationRequest(prompt="hi", candidates=[])))


class StructuredOutputTests(_ClientTestBase):
    def test_json_object_extracted(self):
        book = ProviderBook(gemini=['Sure!\n```json\n{"course": {"name": "Python"}}\n```'])
        outcome = self.run_request(self.make_client(book), [A], output_shape=OutputShape.JSON_OBJECT)

        self.assertIsInstance(outcome, GenerationSuccess)
        self.assertEqual(outcome.payload, {"course": {"name": "Python"}})

    def test_unparsable_output_does_not_fall_back(self):
        book = ProviderBook(gemini=["I cannot help with that."], openrouter=['{"ok": true}'])
        outcome = self.run_request(self.make_client(book), [A, B], output_shape=OutputShape.JSON_OBJECT)

        self.assertIsInstance(outcome, GenerationUnparsable)
        self.assertEqual(outcome.kind, "no_delimiters")
        self.assertEqual(outcome.provider, "gemini")
        self.assertEqual(book["openrouter"].calls, 0)


class BreakerTests(_ClientTestBase):
    def test_all_rate_limited_trips_breaker_and_short_circuits(self):
        breaker = CircuitBreaker("test")
        book = ProviderBook(gemini=[rate_limited(retry_after=20)])
        client = self.make_client(book, breaker=breaker)

        first = self.run_request(client, [A], max_retries_per_candidate=1)
        self.assertTrue(first.all_rate_limited)
        self.assertTrue(breaker.is_open(1000.0))
        # Cooldown (60s) is longer than the provider's 20s.
        self.assertEqual(breaker.remaining_seconds(1000.0), 60)

        second = self.run_request(client, [A], max_retries_per_candidate=1)
        self.assertTrue(second.short_circuited)
        self.assertTrue(second.all_rate_limited)
        self.assertEqual(second.retry_after_seconds, 60)
        self.assertEqual(book["gemini"].calls, 1)

    def test_mixed_failure_does_not_trip_breaker(self):
        breaker = CircuitBreaker("test")
        book = ProviderBook(gemini=[rate_limited()], openrouter=[bad_request()])
        self.run_request(self.make_client(book, breaker=breaker), [A, B], max_retries_per_candidate=1)
        self.assertFalse(breaker.is_open(1000.0))

    def test_breaker_closes_after_until(self):
        breaker = CircuitBreaker("test")
        breaker.trip(30, now=100.0)
        self.assertTrue(breaker.is_open(129.0))
        self.assertFalse(breaker.is_open(130.0))
        self.assertIsNone(breaker.until)

    def test_trip_never_shortens_block(self):
        breaker = CircuitBreaker("test")
        breaker.trip(120, now=0.0)
        breaker.trip(10, now=0.0)
        self.assertEqual(breaker.until, 120.0)


class RaiseForOutcomeTests(unittest.TestCase):
    def test_success_returns_payload(self):
        outcome = GenerationSuccess(payload={"a": 1}, raw_text='{"a": 1}', provider="mock", model="m")
        self.assertEqual(raise_for_outcome(outcome), {"a": 1})

    def test_all_rate_limited_is_429_with_retry_after(self):
        outcome = GenerationExhausted(ErrorKind.RATE_LIMITED, True, 13, "quota")
        with self.assertRaises(AIGenerationError) as ctx:
            raise_for_outcome(outcome)
        self.assertEqual(ctx.exception.status_code, 429)
        self.assertEqual(ctx.exception.retry_after, 13)
        self.assertIn("13 seconds", ctx.exception.message)

    def test_timeout_is_504(self):
        outcome = GenerationExhausted(ErrorKind.TIMEOUT, False, 30, "timed out")
        with self.assertRaises(AIGenerationError) as ctx:
            raise_for_outcome(outcome)
        self.assertEqual(ctx.exception.status_code, 504)

    def test_other_exhaustion_is_500(self):
        outcome = GenerationExhausted(ErrorKind.BAD_REQUEST, False, 30, "Invalid argument")
        with self.assertRaises(AIGenerationError) as ctx:
            raise_for_outcome(outcome, action="generate quiz")
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(ctx.exception.message, "Failed to generate quiz")
        self.assertEqual(ctx.exception.detail, "Invalid argument")

    def test_unparsable_is_502(self):
        outcome = GenerationUnparsable("parse_failed", "Expecting value", "{oops", "gemini", "m")
        with self.assertRaises(AIGenerationError) as ctx:
            raise_for_outcome(outcome)
        self.assertEqual(ctx.exception.status_code, 502)


class AuditLogTests(_ClientTestBase):
    def test_run_logged_with_prompt_hash_only(self):
        book = ProviderBook(gemini=["hello"])
        with self.assertLogs("insight_api.services.ai.common.audit", level="INFO") as logs:
            self.run_request(self.make_client(book), [A])

        output = "\n".join(logs.output)
        self.assertIn("AI_RUN", output)
        self.assertIn("prompt_hash", output)
        self.assertNotIn("Explain recursion", output)
