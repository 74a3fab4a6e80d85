"""Tests for SessionStore and AuthStatusPoller."""

import asyncio
import json
import os
import stat

import httpx

from storefront.auth import AuthStatusPoller, SessionStore
from storefront.client import StorefrontClient
from storefront.models import AuthSession, UserProfile

from .conftest import FakeIdentity


class TestSessionStore:
    def test_save_and_reload(self, temp_dir):
        path = temp_dir / "session.json"
        SessionStore(path).save("tok-123", {"email": "ada@example.com"})

        store = SessionStore(path)
        assert store.is_authenticated
        assert store.token == "tok-123"
        assert store.user == {"email": "ada@example.com"}

    def test_file_is_private(self, temp_dir):
        path = temp_dir / "session.json"
        SessionStore(path).save("tok-123")

        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600

    def test_clear_removes_file(self, temp_dir):
        path = temp_dir / "session.json"
        store = SessionStore(path)
        store.save("tok-123")
        store.clear()

        assert not store.is_authenticated
        assert not path.exists()

    def test_corrupt_file_means_signed_out(self, temp_dir):
        path = temp_dir / "session.json"
        path.write_text("{oops")

        assert not SessionStore(path).is_authenticated

    def test_blank_token_means_signed_out(self, temp_dir):
        path = temp_dir / "session.json"
        path.write_text(json.dumps({"token": "  "}))

        assert not SessionStore(path).is_authenticated


class TestAuthStatusPoller:
    def test_signed_out_by_default(self):
        poller = AuthStatusPoller(FakeIdentity())

        async def scenario():
            assert poller.reconcile() is None

        asyncio.run(scenario())
        assert poller.session == AuthSession()

    def test_login_transition_fetches_profile(self):
        identity = FakeIdentity(token="tok")
        poller = AuthStatusPoller(identity)
        seen = []
        poller.subscribe(seen.append)

        async def scenario():
            task = poller.reconcile()
            assert task is not None
            assert poller.is_authenticated
            await task

        asyncio.run(scenario())

        assert identity.fetch_calls == 1
        assert poller.profile == identity.profile
        assert seen == [
            AuthSession(),
            AuthSession(is_authenticated=True),
            AuthSession(is_authenticated=True, profile=identity.profile),
        ]

    def test_no_refetch_once_profile_cached(self):
        identity = FakeIdentity(token="tok")
        poller = AuthStatusPoller(identity)

        async def scenario():
            await poller.reconcile()
            assert poller.reconcile() is None
            assert poller.reconcile() is None

        asyncio.run(scenario())
        assert identity.fetch_calls == 1

    def test_no_duplicate_fetch_while_in_flight(self):
        identity = FakeIdentity(token="tok")
        identity.block = True
        poller = AuthStatusPoller(identity)

        async def scenario():
            task = poller.reconcile()
            await asyncio.sleep(0)
            assert poller.reconcile() is None
            identity.release.set()
            await task

        asyncio.run(scenario())
        assert identity.fetch_calls == 1

    def test_logout_before_fetch_resolves(self):
        identity = FakeIdentity(token="tok")
        identity.block = True
        poller = AuthStatusPoller(identity)

        async def scenario():
            task = poller.reconcile()
            await asyncio.sleep(0)
            assert identity.fetch_calls == 1

            poller.logout()
            assert poller.session == AuthSession()

            identity.release.set()
            await asyncio.gather(task, return_exceptions=True)
            await asyncio.sleep(0)

        asyncio.run(scenario())

        assert poller.is_authenticated is False
        assert poller.profile is None
        assert identity.token is None

    def test_stale_fetch_result_is_dropped(self):
        identity = FakeIdentity(token="tok")
        identity.block = True
        poller = AuthStatusPoller(identity)

        async def scenario():
            task = poller.reconcile()
            await asyncio.sleep(0)

            # Session disappears and comes back before the first fetch returns
            identity.token = None
            poller.reconcile()
            identity.token = "tok2"
            identity.profile = UserProfile("Bola", "Ade", "bola@example.com")
            second = poller.reconcile()

            identity.release.set()
            await asyncio.gather(task, second, return_exceptions=True)

        asyncio.run(scenario())
        assert poller.profile == UserProfile("Bola", "Ade", "bola@example.com")

    def test_session_loss_clears_profile(self):
        identity = FakeIdentity(token="tok")
        poller = AuthStatusPoller(identity)

        async def scenario():
            await poller.reconcile()
            identity.token = None
            poller.reconcile()

        asyncio.run(scenario())
        assert poller.session == AuthSession()

    def test_failed_fetch_leaves_profile_empty(self):
        identity = FakeIdentity(token="tok")
        identity.fail = True
        poller = AuthStatusPoller(identity)

        async def scenario():
            await poller.reconcile()

        asyncio.run(scenario())
        assert poller.is_authenticated
        assert poller.profile is None

    def test_unsubscribe(self):
        identity = FakeIdentity(token="tok")
        poller = AuthStatusPoller(identity)
        seen = []
        unsubscribe = poller.subscribe(seen.append)
        unsubscribe()

        async def scenario():
            await poller.reconcile()

        asyncio.run(scenario())
        assert poller.profile is not None
        assert seen == [AuthSession()]

    def test_failing_subscriber_does_not_break_publishing(self):
        poller = AuthStatusPoller(FakeIdentity(token="tok"))
        seen = []

        def broken(session):
            raise RuntimeError("boom")

        poller.subscribe(broken)
        poller.subscribe(seen.append)

        async def scenario():
            await poller.reconcile()

        asyncio.run(scenario())
        assert seen[-1].profile is not None

    def test_periodic_reconciliation_picks_up_login(self):
        identity = FakeIdentity()
        poller = AuthStatusPoller(identity, interval=0.01)

        async def scenario():
            async with poller:
                assert poller.running
                await asyncio.sleep(0.02)
                assert not poller.is_authenticated

                identity.token = "tok"
                for _ in range(50):
                    await asyncio.sleep(0.01)
                    if poller.profile is not None:
                        break
            assert not poller.running

        asyncio.run(scenario())
        assert poller.profile == identity.profile

    def test_notify_login_pushes_immediately(self):
        identity = FakeIdentity(token="tok")
        poller = AuthStatusPoller(identity, interval=3600)

        async def scenario():
            task = poller.notify_login()
            assert poller.is_authenticated
            await task

        asyncio.run(scenario())
        assert poller.profile is not None


class TestSessionFileReconcile:
    def test_store_sees_session_written_elsewhere(self, temp_dir):
        path = temp_dir / "session.json"
        store = SessionStore(path)
        assert not store.is_authenticated

        SessionStore(path).save("tok-abc", {"email": "ada@example.com"})
        assert store.is_authenticated
        assert store.token == "tok-abc"

        SessionStore(path).clear()
        assert not store.is_authenticated
        assert store.user == {}

    def test_poller_picks_up_login_from_session_file(self, temp_dir):
        path = temp_dir / "session.json"

        def handler(request):
            assert request.headers["Authorization"] == "Bearer tok-abc"
            return httpx.Response(
                200,
                json={
                    "code": 200,
                    "message": "OK",
                    "data": {"first_name": "Ada", "last_name": "Obi", "email": "ada@example.com"},
                },
            )

        client = StorefrontClient(
            "https://shop.example/api/v1",
            SessionStore(path),
            transport=httpx.MockTransport(handler),
        )
        poller = AuthStatusPoller(client)

        async def scenario():
            assert poller.reconcile() is None
            assert not poller.is_authenticated

            SessionStore(path).save("tok-abc")
            task = poller.reconcile()
            assert poller.is_authenticated
            await task
            assert poller.profile.email == "ada@example.com"

            path.unlink()
            poller.reconcile()
            await client.aclose()

        asyncio.run(scenario())
        assert poller.session == AuthSession()
        assert poller.generation == 2
