"""Tests for the Event value."""

import io

import pytest
from pydantic import ValidationError

from eventsocket.core.interfaces import ConversionError, EventKind
from eventsocket.core.models import Event


@pytest.fixture
def event() -> Event:
    return Event(
        kind=EventKind.ASYNC_EVENT,
        header={
            "Event-Name": "CHANNEL_ANSWER",
            "Event-Sequence": "1024",
            "Answer-State": "answered",
            "Bad-Number": "12a",
            "Negative": "-7",
        },
        body="",
    )


def test_get_returns_empty_for_missing(event):
    assert event.get("Answer-State") == "answered"
    assert event.get("Missing") == ""
    assert event.event_name == "CHANNEL_ANSWER"


def test_get_int(event):
    assert event.get_int("Event-Sequence") == 1024
    assert event.get_int("Negative") == -7


@pytest.mark.parametrize("key", ["Missing", "Bad-Number", "Answer-State"])
def test_get_int_conversion_error(event, key):
    with pytest.raises(ConversionError):
        event.get_int(key)


def test_conversion_error_is_a_value_error(event):
    with pytest.raises(ValueError):
        event.get_int("Missing")


def test_dump_sorts_headers_and_appends_body():
    ev = Event(kind=EventKind.API_REPLY, header={"b": "2", "a": "1"}, body="+OK")
    assert ev.dump() == "a: '1'\nb: '2'\nBODY: '+OK'"


def test_dump_without_body(event):
    lines = event.dump().splitlines()
    assert lines[0].startswith("Answer-State")
    assert not any(line.startswith("BODY") for line in lines)


def test_pretty_print_writes_dump(event):
    out = io.StringIO()
    event.pretty_print(file=out)
    assert out.getvalue() == event.dump() + "\n"


def test_str_includes_body_only_when_present():
    ev = Event(kind=EventKind.API_REPLY, header={"Content-Type": "api/response"}, body="ok")
    assert str(ev) == "{'Content-Type': 'api/response'} body=ok"
    ev = Event(kind=EventKind.API_REPLY, header={"Content-Type": "api/response"})
    assert str(ev) == "{'Content-Type': 'api/response'}"


def test_event_is_frozen(event):
    with pytest.raises(ValidationError):
        event.body = "changed"


def test_event_headers_are_read_only(event):
    with pytest.raises(TypeError):
        event.header["Event-Name"] = "CHANNEL_HANGUP"
    assert event.event_name == "CHANNEL_ANSWER"


def test_event_headers_are_copied_on_construction():
    source = {"Reply-Text": "+OK"}
    ev = Event(kind=EventKind.COMMAND_REPLY, header=source)
    source["Reply-Text"] = "-ERR changed"
    assert ev.get("Reply-Text") == "+OK"
    assert ev.model_dump()["header"] == {"Reply-Text": "+OK"}
