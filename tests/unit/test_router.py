"""Unit tests for WebhookRouter dispatch."""

import asyncio

import pytest

from src.events.exceptions import HandlerError
from src.events.models import WebhookEvent
from src.router.router import WebhookRouter
from src.router.stripe import STRIPE_EVENT_TYPES, StripeWebhookRouter, is_stripe_event_type


def event(event_type="a", event_id="evt_1", data=None):
    return WebhookEvent(id=event_id, type=event_type, data=data or {})


class TestDispatchOrdering:
    """Tests for handler lookup and ordering."""

    @pytest.mark.asyncio
    async def test_handlers_run_in_registration_order(self):
        """Test that h1 runs before h2 for the same type."""
        router = WebhookRouter()
        calls = []

        async def h1(e):
            calls.append("h1")

        async def h2(e):
            calls.append("h2")

        router.on("a", h1)
        router.on("a", h2)

        await router.dispatch(event("a"))

        assert calls == ["h1", "h2"]

    @pytest.mark.asyncio
    async def test_other_type_not_invoked(self):
        """Test that dispatching type b invokes neither handler of type a."""
        router = WebhookRouter()
        calls = []

        async def h1(e):
            calls.append("h1")

        router.on("a", h1)

        invoked = await router.dispatch(event("b"))

        assert calls == []
        assert invoked == 0

    @pytest.mark.asyncio
    async def test_no_handlers_resolves(self):
        """Test that an unregistered type is a silent no-op."""
        router = WebhookRouter()

        assert await router.dispatch(event("nobody.listens")) == 0

    @pytest.mark.asyncio
    async def test_handler_receives_event(self):
        router = WebhookRouter()
        received = []

        async def handler(e):
            received.append(e)

        router.on("a", handler)
        sent = event("a", data={"k": 1})

        await router.dispatch(sent)

        assert received == [sent]

    @pytest.mark.asyncio
    async def test_sync_handler_supported(self):
        """Test that plain functions work as handlers."""
        router = WebhookRouter()
        calls = []
        router.on("a", lambda e: calls.append(e.id))

        await router.dispatch(event("a", event_id="evt_9"))

        assert calls == ["evt_9"]

    @pytest.mark.asyncio
    async def test_dispatch_rejects_non_event(self):
        router = WebhookRouter()

        with pytest.raises(TypeError):
            await router.dispatch({"id": "evt_1", "type": "a", "data": {}})


class TestFailureIsolation:
    """Tests that one failing handler does not starve the others."""

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_stop_siblings(self):
        """Test that h2 still runs when h1 raises, and dispatch fails."""
        router = WebhookRouter()
        calls = []

        async def h1(e):
            calls.append("h1")
            raise RuntimeError("boom")

        async def h2(e):
            calls.append("h2")

        router.on("a", h1).on("a", h2)

        with pytest.raises(HandlerError) as exc_info:
            await router.dispatch(event("a"))

        assert calls == ["h1", "h2"]
        assert len(exc_info.value.failures) == 1
        assert exc_info.value.failures[0].handler.endswith("h1")
        assert isinstance(exc_info.value.failures[0].error, RuntimeError)

    @pytest.mark.asyncio
    async def test_all_failures_aggregated(self):
        """Test that every failing handler is listed."""
        router = WebhookRouter()

        async def bad_one(e):
            raise ValueError("one")

        async def bad_two(e):
            raise KeyError("two")

        router.on("a", bad_one).on("a", bad_two)

        with pytest.raises(HandlerError) as exc_info:
            await router.dispatch(event("a"))

        error = exc_info.value
        assert error.event_type == "a"
        assert [type(f.error) for f in error.failures] == [ValueError, KeyError]
        assert "bad_one" in str(error) and "bad_two" in str(error)


class TestRegistration:
    """Tests for on/route/group registration."""

    @pytest.mark.asyncio
    async def test_on_accepts_list(self):
        router = WebhookRouter()
        calls = []

        async def handler(e):
            calls.append(e.type)

        router.on(["a", "b"], handler)
        await router.dispatch(event("a"))
        await router.dispatch(event("b"))

        assert calls == ["a", "b"]

    def test_on_empty_list_registers_nothing(self, caplog):
        router = WebhookRouter()

        async def handler(e):
            pass

        result = router.on([], handler)

        assert result is router
        assert router.event_types() == []
        assert "empty event type list" in caplog.text

    @pytest.mark.parametrize("bad", ["", "  "])
    def test_on_rejects_blank_type(self, bad):
        router = WebhookRouter()

        with pytest.raises(ValueError):
            router.on(bad, lambda e: None)

    def test_on_list_with_blank_registers_nothing(self):
        """Test that a bad name in a list leaves the router unchanged."""
        router = WebhookRouter()

        with pytest.raises(ValueError):
            router.on(["a", ""], lambda e: None)

        assert router.handlers_for("a") == ()

    @pytest.mark.asyncio
    async def test_on_as_decorator(self):
        router = WebhookRouter()
        calls = []

        @router.on("invoice.paid")
        async def mark_paid(e):
            calls.append(e.id)

        await router.dispatch(event("invoice.paid"))

        assert calls == ["evt_1"]
        assert router.handlers_for("invoice.paid") == (mark_paid,)

    @pytest.mark.asyncio
    async def test_route_mounts_nested_handlers(self):
        """Test that nested handlers are reachable under the prefix."""
        nested = WebhookRouter()
        calls = []

        async def created(e):
            calls.append(e.type)

        nested.on("created", created)

        router = WebhookRouter()
        router.route("customer.subscription", nested)

        await router.dispatch(event("customer.subscription.created"))
        await router.dispatch(event("created"))

        assert calls == ["customer.subscription.created"]

    def test_route_rejects_blank_prefix(self):
        with pytest.raises(ValueError):
            WebhookRouter().route(" ", WebhookRouter())

    @pytest.mark.asyncio
    async def test_group_prefixes_types(self):
        router = WebhookRouter()
        calls = []

        async def handler(e):
            calls.append(e.type)

        router.group("payment_intent", lambda g: g.on(["succeeded", "canceled"], handler))

        await router.dispatch(event("payment_intent.succeeded"))
        await router.dispatch(event("payment_intent.canceled"))

        assert calls == ["payment_intent.succeeded", "payment_intent.canceled"]

    @pytest.mark.asyncio
    async def test_group_use_adds_router_middleware(self):
        router = WebhookRouter()
        seen = []

        async def tag(e, next):
            seen.append(e.type)
            await next()

        router.group("charge", lambda g: g.use(tag).on("refunded", lambda e: None))

        await router.dispatch(event("other.type"))

        assert seen == ["other.type"]
        assert router.middlewares == (tag,)

    def test_group_rejects_blank_prefix(self):
        with pytest.raises(ValueError):
            WebhookRouter().group("", lambda g: None)


class TestFanout:
    """Tests for the fanout helper."""

    @pytest.mark.asyncio
    async def test_fanout_runs_handlers_concurrently(self):
        router = WebhookRouter()
        started = []
        release = asyncio.Event()

        async def first(e):
            started.append("first")
            await release.wait()

        async def second(e):
            started.append("second")
            release.set()

        router.fanout("a", [first, second])

        await asyncio.wait_for(router.dispatch(event("a")), timeout=1)

        assert sorted(started) == ["first", "second"]

    @pytest.mark.asyncio
    async def test_all_or_nothing_fails_dispatch(self):
        router = WebhookRouter()

        async def ok(e):
            pass

        async def bad(e):
            raise RuntimeError("down")

        router.fanout("a", [ok, bad])

        with pytest.raises(HandlerError):
            await router.dispatch(event("a"))

    @pytest.mark.asyncio
    async def test_best_effort_reports_and_succeeds(self):
        router = WebhookRouter()
        errors = []
        calls = []

        async def ok(e):
            calls.append("ok")

        async def bad(e):
            raise RuntimeError("down")

        router.fanout("a", [bad, ok], strategy="best-effort", on_error=errors.append)

        assert await router.dispatch(event("a")) == 1
        assert calls == ["ok"]
        assert len(errors) == 1 and str(errors[0]) == "down"

    def test_unknown_strategy_rejected(self):
        with pytest.raises(ValueError):
            WebhookRouter().fanout("a", [], strategy="sometimes")


class TestConcurrentDispatch:
    """Tests that concurrent dispatches do not interfere."""

    @pytest.mark.asyncio
    async def test_concurrent_dispatches_are_independent(self):
        router = WebhookRouter()
        seen = []

        async def slow(e):
            await asyncio.sleep(0.01)
            seen.append(e.id)

        router.on("a", slow)

        await asyncio.gather(*(router.dispatch(event("a", event_id=f"evt_{i}")) for i in range(5)))

        assert sorted(seen) == [f"evt_{i}" for i in range(5)]


class TestStripeRouter:
    """Tests for the Stripe-specific router."""

    @pytest.mark.asyncio
    async def test_dispatches_like_base_router(self):
        router = StripeWebhookRouter()
        calls = []
        router.on("payment_intent.succeeded", lambda e: calls.append(e.id))

        await router.dispatch(event("payment_intent.succeeded"))

        assert calls == ["evt_1"]
        assert isinstance(router, WebhookRouter)

    def test_known_event_names(self):
        assert "checkout.session.completed" in STRIPE_EVENT_TYPES
        assert is_stripe_event_type("invoice.paid")
        assert not is_stripe_event_type("invoice.typo")
