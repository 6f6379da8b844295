"""Unit tests for core.wide_event module.

Tests the ContextVar-based wide event lifecycle: init, set, get, clear,
and safe no-op behavior outside request context.
"""

import contextvars

import pytest

from core.wide_event import (
    clear_wide_event,
    get_wide_event,
    init_wide_event,
    set_wide_event_fields,
)


@pytest.mark.unit
class TestWideEventLifecycle:
    def test_init_returns_empty_dict(self):
        assert init_wide_event() == {}

    def test_set_on_fresh_event(self):
        init_wide_event()
        set_wide_event_fields(user_id="u1", entity_kind="age")

        event = get_wide_event()
        assert event["user_id"] == "u1"
        assert event["entity_kind"] == "age"

    def test_set_fields_accumulates_and_overwrites(self):
        init_wide_event()
        set_wide_event_fields(a=1, key="old")
        set_wide_event_fields(b=2, key="new")

        assert get_wide_event() == {"a": 1, "b": 2, "key": "new"}

    def test_clear_resets_to_empty(self):
        init_wide_event()
        set_wide_event_fields(user_id="u1")
        clear_wide_event()
        assert get_wide_event() == {}

    def test_direct_dict_mutation_reflected_in_get(self):
        event = init_wide_event()
        event["http_method"] = "POST"
        assert get_wide_event()["http_method"] == "POST"


@pytest.mark.unit
class TestOutsideRequest:
    def test_get_and_set_without_init(self):
        def outside_request():
            set_wide_event_fields(should_not="crash")
            return get_wide_event()

        # A fresh context has never seen init_wide_event()
        assert contextvars.Context().run(outside_request) == {}
