"""Tests for Telegram command handling."""

import asyncio
from datetime import date

from birthday_notifier.services.commands import (
    WELCOME_TEXT,
    CommandDispatcher,
    default_handlers,
)
from birthday_notifier.services.users import UserService
from tests.conftest import FakeTelegramClient, InMemoryUserRepository, message_update


def _dispatcher(
    repository: InMemoryUserRepository, client: FakeTelegramClient
) -> CommandDispatcher:
    return CommandDispatcher(
        telegram_client=client, handlers=default_handlers(UserService(repository))
    )


def test_start_binds_telegram_account() -> None:
    repository = InMemoryUserRepository()
    client = FakeTelegramClient()
    alice = repository.add_user("alice", date(1990, 6, 15))

    asyncio.run(_dispatcher(repository, client).dispatch(message_update("/start")))

    assert repository.users[alice.id].telegram_id == 555
    assert client.messages == [(555, WELCOME_TEXT)]


def test_start_for_unknown_handle_replies_with_error() -> None:
    repository = InMemoryUserRepository()
    client = FakeTelegramClient()

    asyncio.run(
        _dispatcher(repository, client).dispatch(
            message_update("/start", username="stranger")
        )
    )

    assert len(client.messages) == 1
    assert client.messages[0][1].startswith("Sorry, that did not work:")
    assert "@stranger" in client.messages[0][1]


def test_users_lists_every_user() -> None:
    repository = InMemoryUserRepository()
    client = FakeTelegramClient()
    repository.add_user("alice", date(1990, 6, 15), first_name="Alice")
    repository.add_user("bob", date(1985, 2, 1), first_name="Bob")

    asyncio.run(_dispatcher(repository, client).dispatch(message_update("/users")))

    texts = [text for _, text in client.messages]
    assert texts == [
        "ID: 1 Name: Alice Tester 1990-06-15 @alice",
        "ID: 2 Name: Bob Tester 1985-02-01 @bob",
    ]


def test_users_with_empty_store() -> None:
    client = FakeTelegramClient()

    asyncio.run(
        _dispatcher(InMemoryUserRepository(), client).dispatch(
            message_update("/users@birthday_bot")
        )
    )

    assert client.messages == [(555, "No users are registered yet.")]


def test_subscribe_and_unsubscribe_by_id() -> None:
    repository = InMemoryUserRepository()
    client = FakeTelegramClient()
    alice = repository.add_user("alice", date(1990, 6, 15))
    bob = repository.add_user("bob", date(1985, 2, 1))
    dispatcher = _dispatcher(repository, client)

    asyncio.run(
        dispatcher.dispatch(message_update(f"/subscribe {alice.id}", username="bob"))
    )

    assert (alice.id, bob.id) in repository.edges
    assert client.messages[-1][1] == "You are now subscribed to @alice"

    asyncio.run(
        dispatcher.dispatch(
            message_update(f"/unsubscribe {alice.id}", username="bob")
        )
    )

    assert repository.edges == set()
    assert client.messages[-1][1] == "You have unsubscribed from @alice"


def test_subscribe_requires_numeric_id() -> None:
    repository = InMemoryUserRepository()
    client = FakeTelegramClient()
    repository.add_user("alice", date(1990, 6, 15))

    asyncio.run(
        _dispatcher(repository, client).dispatch(message_update("/subscribe alice"))
    )

    assert client.messages == [
        (555, "Please send a numeric user id, for example /subscribe 1")
    ]
    assert repository.edges == set()


def test_plain_text_and_unknown_commands_are_ignored() -> None:
    client = FakeTelegramClient()
    dispatcher = _dispatcher(InMemoryUserRepository(), client)

    asyncio.run(dispatcher.dispatch(message_update("hello there")))
    asyncio.run(dispatcher.dispatch(message_update("/help")))

    assert client.messages == []


def test_unexpected_handler_error_gets_generic_reply() -> None:
    class BrokenRepository(InMemoryUserRepository):
        async def list_users(self) -> list:
            raise RuntimeError("database exploded")

    client = FakeTelegramClient()

    asyncio.run(
        _dispatcher(BrokenRepository(), client).dispatch(message_update("/users"))
    )

    assert client.messages == [(555, "Something went wrong. Please try again later.")]


def test_reply_failure_does_not_escape() -> None:
    repository = InMemoryUserRepository()
    client = FakeTelegramClient(failing_chats={555})
    repository.add_user("alice", date(1990, 6, 15))

    asyncio.run(_dispatcher(repository, client).dispatch(message_update("/users")))

    assert client.messages == []
