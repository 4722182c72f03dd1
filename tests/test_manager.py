"""Tests for owner-facing subscription management."""

from __future__ import annotations

import pytest
from helpers import RecordingEndpoint

from courier.exceptions import NotFoundError, PrivateAddressError, SchemeError, ValidationError
from courier.models import TEST_EVENT
from courier.webhooks import DeliveryExecutor, ReliabilityMonitor, SubscriptionManager
from courier.webhooks.manager import TEST_MESSAGE

OWNER = "user_1"
URL = "https://example.com/webhook"
SECRET = "s3cr3t-value"


@pytest.fixture
def endpoint() -> RecordingEndpoint:
    return RecordingEndpoint([200])


@pytest.fixture
def manager(store, endpoint) -> SubscriptionManager:
    return SubscriptionManager(store, DeliveryExecutor(endpoint.client()))


@pytest.fixture
async def webhook(manager):
    """A registered webhook view."""
    return await manager.register(OWNER, url=URL, secret=SECRET, events=["entry.created"])


class TestRegister:
    """Tests for SubscriptionManager.register()."""

    async def test_register(self, manager):
        """A valid registration should be active with zeroed statistics."""
        view = await manager.register(
            OWNER,
            url=URL,
            secret=SECRET,
            events=["entry.created", "streak.milestone"],
            description="Journal sync",
        )

        assert view.id.startswith("whk_")
        assert view.owner_id == OWNER
        assert view.url == URL
        assert view.active is True
        assert view.events == ["entry.created", "streak.milestone"]
        assert view.description == "Journal sync"
        assert view.total_deliveries == 0
        assert view.failed_deliveries == 0
        assert view.failure_rate == 0.0
        assert "secret" not in view.model_dump()

    async def test_secret_is_stored(self, manager, store):
        """The secret should be kept for signing even though it isn't returned."""
        view = await manager.register(OWNER, url=URL, secret=SECRET, events=["entry.created"])

        stored = await store.get(view.id, OWNER)
        assert stored.secret == SECRET

    @pytest.mark.parametrize(
        "url, error",
        [
            ("http://example.com/webhook", SchemeError),
            ("https://192.168.1.1/webhook", PrivateAddressError),
            ("https://0.0.0.0/webhook", PrivateAddressError),
            ("not a url", ValidationError),
        ],
    )
    async def test_rejects_bad_url(self, manager, store, url, error):
        """Invalid URLs should be refused before anything is stored."""
        with pytest.raises(error):
            await manager.register(OWNER, url=url, secret=SECRET, events=["entry.created"])

        assert await store.list_for_owner(OWNER) == []

    async def test_rejects_short_secret(self, manager):
        """Secrets shorter than the minimum should be refused."""
        with pytest.raises(ValidationError, match="secret"):
            await manager.register(OWNER, url=URL, secret="short", events=["entry.created"])

    async def test_rejects_empty_events(self, manager):
        """At least one event must be selected."""
        with pytest.raises(ValidationError, match="events"):
            await manager.register(OWNER, url=URL, secret=SECRET, events=[])

    async def test_rejects_blank_event_name(self, manager):
        """Blank event names should be refused."""
        with pytest.raises(ValidationError) as exc_info:
            await manager.register(OWNER, url=URL, secret=SECRET, events=["entry.created", " "])

        assert exc_info.value.field.startswith("events")

    async def test_deduplicates_events(self, manager):
        """Repeated event names should be stored once."""
        view = await manager.register(
            OWNER, url=URL, secret=SECRET, events=["entry.created", "entry.created"]
        )

        assert view.events == ["entry.created"]

    async def test_url_stored_trimmed(self, manager, store, endpoint):
        """Whitespace around the URL should not reach storage or delivery."""
        view = await manager.register(
            OWNER, url=f"  {URL} ", secret=SECRET, events=["entry.created"]
        )

        assert view.url == URL
        assert (await store.get(view.id, OWNER)).url == URL

        result = await manager.test(view.id, OWNER)
        assert result.success is True
        assert str(endpoint.requests[0].url) == URL

    @pytest.mark.parametrize("field", ["url", "secret"])
    async def test_rejects_non_string(self, manager, field):
        """None for url or secret should be a validation error."""
        values = {"url": URL, "secret": SECRET}
        values[field] = None

        with pytest.raises(ValidationError) as exc_info:
            await manager.register(OWNER, events=["entry.created"], **values)

        assert exc_info.value.field == field


class TestListAndGet:
    """Tests for list() and get()."""

    async def test_list_hides_secret(self, manager, webhook):
        """Listed webhooks should never carry the secret."""
        views = await manager.list(OWNER)

        assert [v.id for v in views] == [webhook.id]
        for view in views:
            dumped = view.model_dump()
            assert "secret" not in dumped
            assert SECRET not in str(dumped)

    async def test_list_scoped_to_owner(self, manager, webhook):
        """Other owners should not see the webhook."""
        assert await manager.list("user_2") == []

    async def test_list_newest_first(self, manager):
        """Webhooks should be listed newest first."""
        first = await manager.register(OWNER, url=URL, secret=SECRET, events=["entry.created"])
        second = await manager.register(OWNER, url=URL, secret=SECRET, events=["entry.updated"])

        assert [v.id for v in await manager.list(OWNER)] == [second.id, first.id]

    async def test_list_failure_rate(self, manager, store, webhook):
        """failure_rate should be lifetime failed over total."""
        monitor = ReliabilityMonitor(store)
        stored = await store.get(webhook.id, OWNER)

        def _apply(record):
            for ok in (True, False, False, True):
                monitor.apply(record, ok)

        await store.mutate(stored.id, OWNER, _apply)
        [view] = await manager.list(OWNER)

        assert view.total_deliveries == 4
        assert view.failed_deliveries == 2
        assert view.failure_rate == 0.5

    async def test_get(self, manager, webhook):
        """get() should return the owner's webhook."""
        assert (await manager.get(webhook.id, OWNER)).id == webhook.id

    async def test_get_other_owner(self, manager, webhook):
        """Another owner's webhook should look missing."""
        with pytest.raises(NotFoundError):
            await manager.get(webhook.id, "user_2")


class TestUpdate:
    """Tests for SubscriptionManager.update()."""

    async def test_partial_update(self, manager, webhook):
        """Only given fields should change."""
        view = await manager.update(
            webhook.id, OWNER, events=["rhythm.broken"], description="Rhythms"
        )

        assert view.events == ["rhythm.broken"]
        assert view.description == "Rhythms"
        assert view.url == URL
        assert view.updated_at >= webhook.updated_at

    async def test_update_url_revalidated(self, manager, store, webhook):
        """A new URL should pass the same checks as registration."""
        with pytest.raises(PrivateAddressError):
            await manager.update(webhook.id, OWNER, url="https://10.0.0.1/hook")

        stored = await store.get(webhook.id, OWNER)
        assert stored.url == URL

    async def test_update_url_stored_trimmed(self, manager, store, webhook):
        """An updated URL should be stored in its trimmed form."""
        view = await manager.update(webhook.id, OWNER, url=" https://hooks.example.com/in\t")

        assert view.url == "https://hooks.example.com/in"
        assert (await store.get(webhook.id, OWNER)).url == "https://hooks.example.com/in"

    @pytest.mark.parametrize("field", ["url", "secret"])
    async def test_update_rejects_none(self, manager, store, webhook, field):
        """None for url or secret should fail validation without saving."""
        with pytest.raises(ValidationError) as exc_info:
            await manager.update(webhook.id, OWNER, **{field: None})

        assert exc_info.value.field == field
        stored = await store.get(webhook.id, OWNER)
        assert stored.url == URL
        assert stored.secret == SECRET

    async def test_update_secret(self, manager, store, webhook):
        """A new secret should be stored and checked for length."""
        await manager.update(webhook.id, OWNER, secret="another-secret")
        assert (await store.get(webhook.id, OWNER)).secret == "another-secret"

        with pytest.raises(ValidationError):
            await manager.update(webhook.id, OWNER, secret="short")

    async def test_update_empty_events_rejected(self, manager, store, webhook):
        """Clearing all events should be refused without saving."""
        with pytest.raises(ValidationError):
            await manager.update(webhook.id, OWNER, events=[])

        assert (await store.get(webhook.id, OWNER)).events == ["entry.created"]

    async def test_unknown_field_rejected(self, manager, webhook):
        """Statistics and identity fields should not be updatable."""
        with pytest.raises(ValidationError, match="total_deliveries"):
            await manager.update(webhook.id, OWNER, total_deliveries=0)

    async def test_update_other_owner(self, manager, store, webhook):
        """Another owner's update should look like a missing webhook."""
        with pytest.raises(NotFoundError):
            await manager.update(webhook.id, "user_2", description="hijack")

        assert (await store.get(webhook.id, OWNER)).description is None

    async def test_update_missing(self, manager):
        """Updating an unknown id should raise NotFoundError."""
        with pytest.raises(NotFoundError):
            await manager.update("whk_missing", OWNER, active=False)

    async def test_owner_disable(self, manager, webhook):
        """An owner may deactivate a webhook without a reason being set."""
        view = await manager.update(webhook.id, OWNER, active=False)

        assert view.active is False
        assert view.disabled_reason is None

    async def test_re_enable_clears_reason(self, manager, store, webhook):
        """Re-enabling an auto-disabled webhook should clear its reason and window."""
        monitor = ReliabilityMonitor(store)

        def _fail(record):
            for _ in range(20):
                monitor.apply(record, False)

        await store.mutate(webhook.id, OWNER, _fail)
        assert (await manager.get(webhook.id, OWNER)).disabled_reason is not None

        view = await manager.update(webhook.id, OWNER, active=True)

        assert view.active is True
        assert view.disabled_reason is None
        assert view.failed_deliveries == 20
        stored = await store.get(webhook.id, OWNER)
        assert stored.recent_outcomes == []


class TestDelete:
    """Tests for SubscriptionManager.delete()."""

    async def test_delete(self, manager, webhook):
        """A deleted webhook should be gone."""
        await manager.delete(webhook.id, OWNER)

        assert await manager.list(OWNER) == []
        with pytest.raises(NotFoundError):
            await manager.get(webhook.id, OWNER)

    async def test_delete_other_owner(self, manager, webhook):
        """Another owner should not be able to delete the webhook."""
        with pytest.raises(NotFoundError):
            await manager.delete(webhook.id, "user_2")

        assert len(await manager.list(OWNER)) == 1

    async def test_delete_twice(self, manager, webhook):
        """Deleting an already deleted webhook should raise NotFoundError."""
        await manager.delete(webhook.id, OWNER)
        with pytest.raises(NotFoundError):
            await manager.delete(webhook.id, OWNER)


class TestTestDelivery:
    """Tests for SubscriptionManager.test()."""

    async def test_single_signed_attempt(self, manager, webhook, endpoint):
        """A test should send exactly one request with the test event."""
        result = await manager.test(webhook.id, OWNER)

        assert result.success is True
        assert result.status_code == 200
        assert endpoint.calls == 1

        request = endpoint.requests[0]
        body = endpoint.json_bodies()[0]
        assert request.headers["X-Webhook-Event"] == TEST_EVENT
        assert body["event"] == "test"
        assert "test" in body["data"]["message"]
        assert body["data"]["message"] == TEST_MESSAGE
        assert body["data"]["webhook_id"] == webhook.id

    async def test_failure_not_retried(self, store, webhook):
        """A failing test should report the error after one attempt."""
        endpoint = RecordingEndpoint([500])
        manager = SubscriptionManager(store, DeliveryExecutor(endpoint.client()))

        result = await manager.test(webhook.id, OWNER)

        assert result.success is False
        assert result.status_code == 500
        assert "500" in result.error
        assert endpoint.calls == 1

    async def test_statistics_untouched(self, manager, store, webhook):
        """Test deliveries should not count toward statistics."""
        await manager.test(webhook.id, OWNER)

        stored = await store.get(webhook.id, OWNER)
        assert stored.total_deliveries == 0
        assert stored.last_triggered_at is None

    async def test_works_on_inactive(self, manager, webhook, endpoint):
        """Owners should be able to test a disabled webhook before re-enabling it."""
        await manager.update(webhook.id, OWNER, active=False)

        result = await manager.test(webhook.id, OWNER)

        assert result.success is True
        assert endpoint.calls == 1

    async def test_other_owner(self, manager, webhook, endpoint):
        """Another owner should not be able to trigger a test."""
        with pytest.raises(NotFoundError):
            await manager.test(webhook.id, "user_2")

        assert endpoint.calls == 0
