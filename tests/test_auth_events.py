import pytest

from bookstore_cart.services.auth_events import AuthEvents, AuthState


def test_auth_state_flags():
    assert AuthState.signed_in("u1").is_authenticated
    assert not AuthState.signed_out().is_authenticated
    assert not AuthState(user_id="").is_authenticated


@pytest.mark.asyncio
class TestAuthEvents:
    async def test_listeners_are_called_in_order(self):
        auth = AuthEvents()
        calls = []

        async def first(state):
            calls.append(("first", state.user_id))

        async def second(state):
            calls.append(("second", state.user_id))

        auth.subscribe(first)
        auth.subscribe(second)
        await auth.sign_in("u1")
        await auth.sign_out()

        assert calls == [("first", "u1"), ("second", "u1"), ("first", None), ("second", None)]

    async def test_repeated_state_is_not_published(self):
        auth = AuthEvents()
        calls = []

        async def listener(state):
            calls.append(state)

        auth.subscribe(listener)
        await auth.sign_in("u1")
        await auth.sign_in("u1")
        await auth.sign_out()
        await auth.sign_out()

        assert calls == [AuthState.signed_in("u1"), AuthState.signed_out()]

    async def test_switching_users_is_a_new_state(self):
        auth = AuthEvents(AuthState.signed_in("u1"))
        calls = []

        async def listener(state):
            calls.append(state.user_id)

        auth.subscribe(listener)
        await auth.sign_in("u2")

        assert calls == ["u2"]
        assert auth.current == AuthState.signed_in("u2")

    async def test_unsubscribe(self):
        auth = AuthEvents()
        calls = []

        async def listener(state):
            calls.append(state)

        unsubscribe = auth.subscribe(listener)
        unsubscribe()
        unsubscribe()
        await auth.sign_in("u1")

        assert calls == []
