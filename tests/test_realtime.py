import pytest
import json
from models.notification import NotificationModel
from utils.realtime import CONNECTED_MESSAGE, NotificationBroadcaster, encode_frame, event_stream

pytestmark = pytest.mark.asyncio


def decode(frame: str) -> dict:
    assert frame.startswith("data: ")
    assert frame.endswith("\n\n")
    return json.loads(frame[len("data: "):])


def make_notification(user_id="u-1", title="Task assigned"):
    return NotificationModel(user_id=user_id, type="task_assigned", title=title, message="Check your tasks")


async def test_encode_frame_is_single_data_line():
    frame = encode_frame({"type": "heartbeat", "timestamp": 1})
    assert frame == 'data: {"type": "heartbeat", "timestamp": 1}\n\n'


async def test_send_to_disconnected_user_returns_false():
    broadcaster = NotificationBroadcaster()
    assert broadcaster.send_to_user("nobody", make_notification("nobody")) is False


async def test_stream_opens_with_connected_frame_and_delivers():
    broadcaster = NotificationBroadcaster()
    stream = event_stream("u-1", broadcaster, heartbeat_interval=5)

    first = decode(await stream.__anext__())
    assert first == {"type": "connected", "message": CONNECTED_MESSAGE}
    assert broadcaster.is_connected("u-1")

    notification = make_notification()
    assert broadcaster.send_to_user("u-1", notification) is True
    frame = decode(await stream.__anext__())
    assert frame["type"] == "notification"
    assert frame["notification"]["id"] == notification.id
    assert frame["notification"]["title"] == "Task assigned"

    await stream.aclose()
    assert not broadcaster.is_connected("u-1")
    assert broadcaster.connection_count == 0


async def test_idle_stream_emits_heartbeat():
    broadcaster = NotificationBroadcaster()
    stream = event_stream("u-1", broadcaster, heartbeat_interval=0.01)
    await stream.__anext__()

    frame = decode(await stream.__anext__())
    assert frame["type"] == "heartbeat"
    assert isinstance(frame["timestamp"], int)
    await stream.aclose()


async def test_newer_stream_replaces_older_one():
    broadcaster = NotificationBroadcaster()
    old = event_stream("u-1", broadcaster, heartbeat_interval=5)
    await old.__anext__()
    new = event_stream("u-1", broadcaster, heartbeat_interval=5)
    await new.__anext__()
    assert broadcaster.connection_count == 1

    # Closing the replaced stream leaves the newer registration in place
    await old.aclose()
    assert broadcaster.is_connected("u-1")

    broadcaster.send_to_user("u-1", make_notification(title="Goes to the new stream"))
    frame = decode(await new.__anext__())
    assert frame["notification"]["title"] == "Goes to the new stream"
    await new.aclose()
    assert not broadcaster.is_connected("u-1")


async def test_unregister_only_matching_queue():
    broadcaster = NotificationBroadcaster()
    stale = broadcaster.register("u-1")
    current = broadcaster.register("u-1")

    broadcaster.unregister("u-1", stale)
    assert broadcaster.is_connected("u-1")
    broadcaster.unregister("u-1", current)
    assert not broadcaster.is_connected("u-1")
    broadcaster.unregister("u-1")
