import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from conftest import USER_ID, event_path, make_event


@pytest.fixture
def device_user(repository, registered_user):
  repository.update_user(USER_ID, fcm_token="device-token-abc")
  return repository.get_user(USER_ID)


def _in(**delta) -> datetime:
  return datetime.now(timezone.utc).replace(microsecond=0) + timedelta(**delta)


def test_schedule_reminders(client, upstream, repository, device_user):
  start = _in(days=14)
  upstream.add(event_path("E1"), make_event("E1", start=start))

  resp = client.post("/api/notifications", json={"eventId": "E1", "reminderIds": [1, 2, 3, 4]})
  assert resp.status_code == 201
  body = resp.json()
  assert body["message"] == "Notification(s) scheduled successfully"
  assert len(body["notificationIds"]) == 4
  assert body["skippedReminderIds"] == []

  rows = repository.list_notifications(USER_ID)
  naive_start = start.replace(tzinfo=None)
  assert [row.fire_at for row in rows] == [
    naive_start - timedelta(days=7),
    naive_start - timedelta(days=2),
    naive_start - timedelta(days=1),
    naive_start - timedelta(hours=1),
  ]
  assert {row.status for row in rows} == {"pending"}


def test_single_reminder_id(client, upstream, repository, device_user):
  upstream.add(event_path("E1"), make_event("E1"))
  resp = client.post("/api/notifications", json={"eventId": "E1", "reminderId": 2})
  assert resp.status_code == 201
  assert [row.reminder_id for row in repository.list_notifications(USER_ID)] == [2]


def test_reminders_already_past_are_skipped(client, upstream, device_user):
  upstream.add(event_path("E1"), make_event("E1", start=_in(hours=3)))
  resp = client.post("/api/notifications", json={"eventId": "E1", "reminderIds": [1, 2]})
  assert resp.status_code == 201
  assert resp.json()["skippedReminderIds"] == [2]
  assert len(resp.json()["notificationIds"]) == 1


def test_all_reminders_past(client, upstream, device_user):
  upstream.add(event_path("E1"), make_event("E1", start=_in(minutes=30)))
  resp = client.post("/api/notifications", json={"eventId": "E1", "reminderId": 1})
  assert resp.status_code == 400
  assert resp.json() == {"message": "Reminder time has already passed"}


def test_past_event_is_rejected(client, upstream, device_user):
  upstream.add(event_path("E1"), make_event("E1", start=_in(days=-1)))
  resp = client.post("/api/notifications", json={"eventId": "E1", "reminderId": 1})
  assert resp.status_code == 400
  assert resp.json() == {"message": "Event has already passed"}


def test_unknown_reminder_id(client, upstream, device_user):
  resp = client.post("/api/notifications", json={"eventId": "E1", "reminderIds": [1, 9]})
  assert resp.status_code == 400
  assert resp.json() == {"message": "Invalid input data: invalid reminderId(s)"}
  assert upstream.requests == []


def test_missing_event_id(client, device_user):
  resp = client.post("/api/notifications", json={"reminderId": 1})
  assert resp.status_code == 400
  assert resp.json() == {"message": "Invalid input data: eventId is required"}


def test_user_without_device_token(client, upstream, registered_user):
  upstream.add(event_path("E1"), make_event("E1"))
  resp = client.post("/api/notifications", json={"eventId": "E1", "reminderId": 1})
  assert resp.status_code == 400
  assert resp.json() == {"message": "User FCM token not found"}


def test_list_includes_live_event_details(client, upstream, repository, device_user):
  upstream.add(event_path("E1"), make_event("E1"))
  client.post("/api/notifications", json={"eventId": "E1", "reminderIds": [1, 2]})
  # second event disappears upstream after scheduling
  upstream.add(event_path("E2"), make_event("E2", name="Gone Soon"))
  client.post("/api/notifications", json={"eventId": "E2", "reminderId": 4})
  del upstream.routes[event_path("E2")]

  body = client.get("/api/notifications").json()
  assert len(body) == 3
  by_event = {item["eventId"]: item for item in body}
  assert by_event["E1"]["event"]["title"] == "Test Concert"
  assert by_event["E2"]["event"] is None
  assert by_event["E2"]["reminderLabel"] == "1 week"


def test_update_notification(client, upstream, repository, device_user):
  upstream.add(event_path("E1"), make_event("E1"))
  new_start = _in(days=30)
  upstream.add(event_path("E2"), make_event("E2", name="Other Show", start=new_start))
  notification_id = client.post("/api/notifications", json={"eventId": "E1", "reminderId": 1}).json()["notificationIds"][0]

  resp = client.put(f"/api/notifications/{notification_id}", json={"newEventId": "E2", "newReminderId": 2})
  assert resp.status_code == 200
  assert resp.json() == {"message": "Notification updated successfully"}

  row = repository.list_notifications(USER_ID)[0]
  assert row.event_id == "E2"
  assert row.reminder_id == 2
  assert row.event_title == "Other Show"
  assert row.fire_at == new_start.replace(tzinfo=None) - timedelta(days=1)


def test_update_with_bad_id(client, device_user):
  resp = client.put("/api/notifications/abc", json={"newEventId": "E1", "newReminderId": 1})
  assert resp.status_code == 400
  assert resp.json() == {"message": "Invalid Notification ID"}


def test_update_with_unknown_reminder(client, device_user):
  resp = client.put("/api/notifications/1", json={"newEventId": "E1", "newReminderId": 7})
  assert resp.status_code == 400


def test_update_missing_notification(client, upstream, device_user):
  upstream.add(event_path("E1"), make_event("E1"))
  resp = client.put("/api/notifications/42", json={"newEventId": "E1", "newReminderId": 1})
  assert resp.status_code == 404
  assert resp.json() == {"message": "Notification not found or no changes made"}


def test_update_onto_past_event_is_rejected(client, upstream, repository, device_user):
  upstream.add(event_path("E1"), make_event("E1"))
  upstream.add(event_path("OLD"), make_event("OLD", start=_in(days=-2)))
  notification_id = client.post("/api/notifications", json={"eventId": "E1", "reminderId": 1}).json()["notificationIds"][0]

  resp = client.put(f"/api/notifications/{notification_id}", json={"newEventId": "OLD", "newReminderId": 1})
  assert resp.status_code == 400
  assert resp.json() == {"message": "Event has already passed"}
  assert repository.list_notifications(USER_ID)[0].event_id == "E1"


def test_update_with_reminder_already_past(client, upstream, repository, device_user):
  upstream.add(event_path("E1"), make_event("E1"))
  upstream.add(event_path("SOON"), make_event("SOON", start=_in(minutes=30)))
  notification_id = client.post("/api/notifications", json={"eventId": "E1", "reminderId": 1}).json()["notificationIds"][0]

  resp = client.put(f"/api/notifications/{notification_id}", json={"newEventId": "SOON", "newReminderId": 2})
  assert resp.status_code == 400
  assert resp.json() == {"message": "Reminder time has already passed"}
  row = repository.list_notifications(USER_ID)[0]
  assert (row.event_id, row.reminder_id) == ("E1", 1)


def test_delete_notification(client, upstream, repository, device_user):
  upstream.add(event_path("E1"), make_event("E1"))
  notification_id = client.post("/api/notifications", json={"eventId": "E1", "reminderId": 1}).json()["notificationIds"][0]

  resp = client.delete(f"/api/notifications/{notification_id}")
  assert resp.status_code == 200
  assert resp.json() == {"message": "Notification deleted"}
  assert repository.list_notifications(USER_ID) == []

  assert client.delete(f"/api/notifications/{notification_id}").status_code == 404


def test_delete_with_bad_id(client, device_user):
  resp = client.delete("/api/notifications/not-a-number")
  assert resp.status_code == 400
  assert resp.json() == {"message": "Invalid Notification ID"}


def _loop_running() -> bool:
  try:
    asyncio.get_running_loop()
  except RuntimeError:
    return False
  return True


def test_repository_calls_run_off_the_event_loop(client, upstream, repository, device_user, monkeypatch):
  seen = []
  for name in ("get_user", "add_notifications", "list_notifications"):
    original = getattr(repository, name)

    def recording(*args, _original=original, **kwargs):
      seen.append(_loop_running())
      return _original(*args, **kwargs)

    monkeypatch.setattr(repository, name, recording)

  upstream.add(event_path("E1"), make_event("E1"))
  assert client.post("/api/notifications", json={"eventId": "E1", "reminderId": 1}).status_code == 201
  assert client.get("/api/notifications").status_code == 200
  assert len(seen) == 3
  assert seen == [False, False, False]
