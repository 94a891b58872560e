"""Tests for Action construction and lifecycle dispatch."""

from __future__ import annotations

import asyncio
import unittest

from fluxcore.action import Action, ActionStatus, Scene, make_action
from fluxcore.config import ActionConfig
from fluxcore.dispatcher import Dispatcher
from fluxcore.exceptions import InvalidArgumentError, PreconditionFailedError


def noop(params: object = None) -> None:
    return None


async def drain() -> None:
    """Let next-turn callbacks run."""
    for _ in range(3):
        await asyncio.sleep(0)


class FakeDispatcher:
    """Minimal dispatch-capable double."""

    def __init__(self) -> None:
        self.dispatched: list[tuple[str, Scene]] = []

    def register(self, name, handler):
        return self

    def unregister(self, name, handler):
        return self

    def dispatch(self, name, payload=None):
        self.dispatched.append((name, payload))
        return self

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.dispatched]


class ActionConstructionTests(unittest.TestCase):
    """Construction-time validation is synchronous."""

    def test_requires_a_dispatch_capable_object(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            make_action(None, "test", noop)  # type: ignore[arg-type]
        with self.assertRaises(InvalidArgumentError):
            make_action(object(), "test", noop)  # type: ignore[arg-type]

    def test_requires_a_name(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            make_action(Dispatcher(), None, noop)  # type: ignore[arg-type]
        with self.assertRaises(InvalidArgumentError):
            make_action(Dispatcher(), "", noop)

    def test_requires_a_function(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            make_action(Dispatcher(), "test", None)  # type: ignore[arg-type]
        with self.assertRaises(InvalidArgumentError):
            make_action(Dispatcher(), "test", {})  # type: ignore[arg-type]

    def test_returns_a_callable_action(self) -> None:
        action = make_action(Dispatcher(), "test", noop)
        self.assertIsInstance(action, Action)
        self.assertTrue(callable(action))
        self.assertEqual(action.__name__, "noop")

    def test_calling_outside_a_loop_fails(self) -> None:
        fake = FakeDispatcher()
        action = make_action(fake, "test", noop)
        with self.assertRaises(PreconditionFailedError):
            action()
        self.assertEqual(fake.dispatched, [])

    def test_event_names_follow_config(self) -> None:
        action = make_action(Dispatcher(), "navigate", noop)
        self.assertEqual(action.pending_event, "navigate:pending")
        self.assertEqual(action.succeeded_event, "navigate:succeeded")
        self.assertEqual(action.failed_event, "navigate:failed")

        bare = make_action(
            Dispatcher(), "navigate", noop, config=ActionConfig(succeeded_suffix="")
        )
        self.assertEqual(bare.succeeded_event, "navigate")


class ActionLifecycleTests(unittest.IsolatedAsyncioTestCase):
    """Validate pending -> succeeded/failed dispatch ordering and payloads."""

    async def test_returns_a_future(self) -> None:
        result = make_action(Dispatcher(), "test", noop)()
        self.assertIsInstance(result, asyncio.Future)
        self.assertIsNone(await result)

    async def test_passes_exactly_one_argument(self) -> None:
        seen: list[tuple[object, ...]] = []

        def action(*args: object) -> None:
            seen.append(args)

        await make_action(Dispatcher(), "test", action)("answer")
        self.assertEqual(seen, [("answer",)])

    async def test_pending_is_dispatched_synchronously(self) -> None:
        fake = FakeDispatcher()
        future = make_action(fake, "test", noop)({"foo": "bar"})
        self.assertEqual(fake.names, ["test:pending"])
        pending = fake.dispatched[0][1]
        self.assertEqual(pending.params, {"foo": "bar"})
        self.assertIs(pending.status, ActionStatus.PENDING)
        await future

    async def test_sync_value_dispatches_succeeded_with_result(self) -> None:
        fake = FakeDispatcher()

        def swap(params: dict[str, str]) -> dict[str, str]:
            return {value: key for key, value in params.items()}

        future = make_action(fake, "test", swap)({"foo": "bar"})
        self.assertEqual(await future, {"bar": "foo"})
        await drain()

        self.assertEqual(fake.names, ["test:pending", "test:succeeded"])
        scene = fake.dispatched[1][1]
        self.assertEqual(scene.result, {"bar": "foo"})
        self.assertIsNone(scene.error)
        self.assertIs(scene.status, ActionStatus.SUCCEEDED)

    async def test_succeeded_is_never_dispatched_inside_the_call(self) -> None:
        fake = FakeDispatcher()
        future = make_action(fake, "test", lambda params: params)(1)
        self.assertEqual(fake.names, ["test:pending"])
        await future
        await drain()
        self.assertEqual(fake.names, ["test:pending", "test:succeeded"])

    async def test_coroutine_result_is_awaited(self) -> None:
        fake = FakeDispatcher()

        async def fetch(params: int) -> int:
            await asyncio.sleep(0)
            return params * 2

        future = make_action(fake, "fetch", fetch)(21)
        self.assertEqual(await future, 42)
        await drain()
        self.assertEqual(fake.names, ["fetch:pending", "fetch:succeeded"])
        self.assertEqual(fake.dispatched[1][1].result, 42)

    async def test_sync_exception_dispatches_failed(self) -> None:
        dispatcher = Dispatcher()
        failures: list[Scene] = []
        dispatcher.register("test:failed", failures.append)

        def fail(params: object) -> None:
            raise RuntimeError("Belgium!")

        future = make_action(dispatcher, "test", fail)()
        with self.assertRaises(RuntimeError):
            await future
        await drain()

        self.assertEqual(len(failures), 1)
        self.assertIsInstance(failures[0].error, RuntimeError)
        self.assertEqual(failures[0].message, "Belgium!")
        self.assertIs(failures[0].status, ActionStatus.FAILED)

    async def test_sync_stop_iteration_dispatches_failed(self) -> None:
        fake = FakeDispatcher()

        def exhausted(params: object) -> None:
            raise StopIteration("empty")

        future = make_action(fake, "test", exhausted)()
        with self.assertRaises(RuntimeError) as caught:
            await future
        await drain()

        self.assertIsInstance(caught.exception.__cause__, StopIteration)
        self.assertEqual(fake.names, ["test:pending", "test:failed"])
        scene = fake.dispatched[1][1]
        self.assertTrue(scene.failed)
        self.assertIsInstance(scene.error, RuntimeError)

    async def test_async_rejection_dispatches_failed(self) -> None:
        fake = FakeDispatcher()

        async def fail(params: object) -> None:
            await asyncio.sleep(0)
            raise LookupError("missing")

        future = make_action(fake, "test", fail)()
        with self.assertRaises(LookupError):
            await future
        await drain()
        self.assertEqual(fake.names, ["test:pending", "test:failed"])
        self.assertEqual(fake.dispatched[1][1].message, "missing")

    async def test_cancellation_dispatches_failed(self) -> None:
        fake = FakeDispatcher()

        async def slow(params: object) -> None:
            await asyncio.sleep(9999)

        future = make_action(fake, "slow", slow)()
        await asyncio.sleep(0)  # Let the task start.
        future.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await future
        await drain()
        self.assertEqual(fake.names, ["slow:pending", "slow:failed"])
        self.assertIsInstance(fake.dispatched[1][1].error, asyncio.CancelledError)

    async def test_bare_name_variant(self) -> None:
        fake = FakeDispatcher()
        action = make_action(
            fake, "navigate", lambda s: s, config=ActionConfig(succeeded_suffix="")
        )
        await action("login")
        await drain()
        self.assertEqual(fake.names, ["navigate:pending", "navigate"])

    async def test_failing_terminal_handler_is_logged_not_raised(self) -> None:
        dispatcher = Dispatcher()

        def broken(scene: Scene) -> None:
            raise RuntimeError("handler broke")

        dispatcher.register("test:succeeded", broken)
        with self.assertLogs("fluxcore.action", level="ERROR") as logs:
            self.assertEqual(await make_action(dispatcher, "test", lambda p: p)(5), 5)
            await drain()
        self.assertTrue(any("action.dispatch_failed" in line for line in logs.output))

    async def test_preserves_receiver_when_used_as_method(self) -> None:
        fake = FakeDispatcher()
        receivers: list[object] = []

        def login(self: object, params: str) -> str:
            receivers.append(self)
            return params

        class Session:
            start = make_action(fake, "session:start", login)

        session = Session()
        self.assertEqual(await session.start("token"), "token")
        self.assertEqual(receivers, [session])
        self.assertIsInstance(Session.start, Action)

    async def test_dispatcher_decorator_creates_action(self) -> None:
        dispatcher = Dispatcher()
        seen: list[str] = []
        dispatcher.register("greet:*", lambda scene: seen.append(scene.status.value))

        @dispatcher.action("greet")
        def greet(params: str) -> str:
            return f"hello {params}"

        self.assertEqual(await greet("world"), "hello world")
        await drain()
        self.assertEqual(seen, ["pending", "succeeded"])

    async def test_scene_to_dict(self) -> None:
        scene = Scene(name="x", params=1, error=ValueError("nope"))
        self.assertEqual(
            scene.to_dict(),
            {"name": "x", "params": 1, "result": None, "error": "nope", "status": "pending"},
        )
        self.assertFalse(scene.settled)
        self.assertFalse(scene.succeeded)
        self.assertFalse(scene.failed)

    async def test_scene_status_properties_after_settling(self) -> None:
        fake = FakeDispatcher()
        await make_action(fake, "ok", lambda params: params)(1)

        def fail(params: object) -> None:
            raise ValueError("nope")

        with self.assertRaises(ValueError):
            await make_action(fake, "bad", fail)()
        await drain()

        scenes = {name: scene for name, scene in fake.dispatched}
        self.assertTrue(scenes["ok:succeeded"].succeeded)
        self.assertFalse(scenes["ok:succeeded"].failed)
        self.assertTrue(scenes["bad:failed"].failed)
        self.assertFalse(scenes["bad:failed"].succeeded)
        self.assertTrue(scenes["bad:failed"].settled)


if __name__ == "__main__":
    unittest.main()
