# Copyright (c) 2026 TempoTrigger Contributors. All Rights Reserved.
"""Unit tests for TaskGroup: state machine and adaptive tick loop."""

import pytest
from tempo_trigger.core.errors import CallbackError
from tempo_trigger.kernel.task_group import GroupState, TaskGroup


def make_group(clock, resolver, offset_ms, callbacks=(), **kwargs):
    return TaskGroup(clock.now_ms() + offset_ms, resolver, clock, callbacks=callbacks, **kwargs)


class TestTaskGroupScheduling:
    def test_not_started_on_construction(self, clock, resolver, calls):
        group = make_group(clock, resolver, -1000, [calls.cb("a")])
        assert group.state is GroupState.SCHEDULED
        assert calls == []
        assert clock.pending == 0

    def test_past_target_fires_on_start(self, clock, resolver, calls):
        group = make_group(clock, resolver, -1000, [calls.cb("a")])
        group.start()
        assert calls == ["a"]
        assert group.fired
        assert clock.requested_delays == []

    def test_target_equal_now_fires_on_start(self, clock, resolver, calls):
        group = make_group(clock, resolver, 0, [calls.cb("a")])
        group.start()
        assert calls == ["a"]

    def test_future_target_never_fires_early(self, clock, resolver, calls):
        group = make_group(clock, resolver, 5000, [calls.cb("a")])
        group.start()
        clock.advance(4999)
        assert calls == []
        clock.advance(1)
        assert calls == ["a"]
        clock.advance(60_000)
        assert calls == ["a"]

    def test_single_outstanding_wait(self, clock, resolver, calls):
        group = make_group(clock, resolver, 120_000, [calls.cb("a")])
        group.start()
        group.start()
        assert clock.pending == 1
        clock.advance(60_000)
        assert clock.pending == 1
        assert group.has_pending_wait

    def test_polling_narrows_toward_target(self, clock, resolver, calls):
        group = make_group(clock, resolver, 600_000, [calls.cb("a")])
        group.start()
        clock.advance(600_000)

        assert calls == ["a"]
        assert clock.requested_delays == [300_000, 150_000, 75_000, 37_500, 500] + [1000] * 37
        assert group.ticks == len(clock.requested_delays) + 1

    def test_advancing_past_target_fires_once(self, clock, resolver, calls):
        group = make_group(clock, resolver, 3000, [calls.cb("a")])
        group.start()
        clock.advance(10_000)
        assert calls == ["a"]
        assert clock.pending == 0


class TestTaskGroupMembership:
    def test_add_and_count(self, clock, resolver, calls):
        group = make_group(clock, resolver, 5000)
        assert group.is_empty()
        group.add_task(calls.cb("a"))
        group.add_task(calls.cb("b"))
        assert group.task_count() == 2

    def test_remove_first_match_only(self, clock, resolver, calls):
        cb = calls.cb("a")
        group = make_group(clock, resolver, 5000, [cb, cb])
        assert group.remove_task(cb) is True
        assert group.task_count() == 1
        assert group.remove_task(calls.cb("other")) is False

    def test_remove_while_firing_is_refused(self, clock, resolver, calls):
        removed = []
        second = calls.cb("b")
        group = make_group(clock, resolver, 5000)
        group.add_task(lambda: removed.append(group.remove_task(second)))
        group.add_task(second)
        group.execute()
        assert removed == [False]
        assert calls == ["b"]

    def test_remove_after_destroy_is_refused(self, clock, resolver, calls):
        cb = calls.cb("a")
        group = make_group(clock, resolver, 5000, [cb])
        group.destroy()
        assert group.remove_task(cb) is False

    def test_add_after_fire_is_ignored(self, clock, resolver, calls):
        group = make_group(clock, resolver, 0, [calls.cb("a")])
        group.start()
        group.add_task(calls.cb("late"))
        assert group.task_count() == 0
        clock.advance(10_000)
        assert calls == ["a"]

    def test_remaining_ms(self, clock, resolver):
        group = make_group(clock, resolver, 5000)
        assert group.remaining_ms() == 5000
        clock.advance(7000)
        assert group.remaining_ms() == -2000


class TestTaskGroupExecute:
    def test_execute_is_idempotent(self, clock, resolver, calls):
        group = make_group(clock, resolver, 5000, [calls.cb("a")])
        group.start()
        assert group.execute() == []
        assert group.execute() == []
        clock.advance(10_000)
        assert calls == ["a"]
        assert group.state is GroupState.FIRED
        assert clock.pending == 0

    def test_callback_error_does_not_stop_siblings(self, clock, resolver, calls):
        reported = []

        def boom():
            raise RuntimeError("boom")

        group = make_group(
            clock, resolver, 5000, [calls.cb("a"), boom, calls.cb("b")],
            on_error=reported.append,
        )
        group.start()
        errors = group.execute()

        assert calls == ["a", "b"]
        assert len(errors) == 1
        assert isinstance(errors[0], CallbackError)
        assert isinstance(errors[0].error, RuntimeError)
        assert errors[0].__cause__ is errors[0].error
        assert errors[0].target_time == group.target_time
        assert reported == errors
        assert group.is_empty()
        assert not group.has_pending_wait

    def test_failing_error_channel_is_contained(self, clock, resolver, calls):
        def boom():
            raise ValueError("bad")

        def broken_channel(error):
            raise RuntimeError("channel down")

        group = make_group(clock, resolver, 0, [boom, calls.cb("b")], on_error=broken_channel)
        group.start()
        assert calls == ["b"]
        assert group.fired

    def test_base_exception_propagates_after_teardown(self, clock, resolver, calls):
        def interrupt():
            raise KeyboardInterrupt

        group = make_group(clock, resolver, 5000, [interrupt, calls.cb("b")])
        group.start()
        with pytest.raises(KeyboardInterrupt):
            group.execute()
        assert group.fired
        assert group.is_empty()
        assert clock.pending == 0

    def test_settle_hook_runs_before_callbacks(self, clock, resolver):
        seen = []
        group = make_group(
            clock, resolver, 5000,
            [lambda: seen.append("callback")],
            on_settle=lambda g: seen.append(("settle", g.state)),
        )
        group.execute()
        group.execute()
        assert seen == [("settle", GroupState.FIRED), "callback"]


class TestTaskGroupDestroy:
    def test_destroy_discards_callbacks(self, clock, resolver, calls):
        group = make_group(clock, resolver, 5000, [calls.cb("a")])
        group.start()
        group.destroy()
        assert group.destroyed
        assert group.is_empty()
        assert clock.pending == 0
        clock.advance(10_000)
        assert calls == []

    def test_destroy_is_idempotent(self, clock, resolver):
        settled = []
        group = make_group(clock, resolver, 5000, on_settle=settled.append)
        group.destroy()
        group.destroy()
        assert settled == [group]

    def test_no_transition_out_of_terminal_state(self, clock, resolver, calls):
        group = make_group(clock, resolver, 5000, [calls.cb("a")])
        group.destroy()
        assert group.execute() == []
        group.start()
        assert calls == []
        assert group.state is GroupState.DESTROYED

        fired = make_group(clock, resolver, 0, [calls.cb("b")])
        fired.start()
        fired.destroy()
        assert fired.state is GroupState.FIRED
