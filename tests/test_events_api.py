import httpx
from fastapi.testclient import TestClient

from conftest import CLASSIFICATIONS_PATH, EVENTS_PATH, event_path, events_body, make_event


def test_health(anon_client):
  assert anon_client.get("/health").json() == {"ok": True}


def test_location_search(anon_client, upstream):
  upstream.add(EVENTS_PATH, events_body(make_event("E1")))
  resp = anon_client.get(
    "/api/events",
    params={"latitude": 55.6761, "longitude": 12.5683, "radius": 10, "startDate": "2030-01-01", "endDate": "2030-01-02"},
  )
  assert resp.status_code == 200
  body = resp.json()
  assert body[0]["id"] == "E1"
  assert body[0]["address"] == "Hannemanns Allé 18, Copenhagen"
  params = upstream.calls(EVENTS_PATH)[0].url.params
  assert params["startDateTime"] == "2030-01-01T00:00:00Z"
  assert params["endDateTime"] == "2030-01-02T23:59:59Z"


def test_radius_too_large_is_400(anon_client, upstream):
  resp = anon_client.get("/api/events", params={"latitude": 1, "longitude": 2, "radius": 20000})
  assert resp.status_code == 400
  assert resp.json() == {"message": "Radius cannot exceed 19,999 miles"}
  assert upstream.requests == []


def test_missing_coordinates_is_400(anon_client):
  resp = anon_client.get("/api/events")
  assert resp.status_code == 400
  assert resp.json()["message"] == "latitude and longitude are required"


def test_invalid_event_date_is_400(anon_client):
  resp = anon_client.get("/api/events", params={"latitude": 1, "longitude": 2, "eventDate": "tomorrowish"})
  assert resp.status_code == 400
  assert resp.json() == {"message": "Invalid date format"}


def test_categories_mode(anon_client, upstream):
  upstream.add(
    CLASSIFICATIONS_PATH,
    {"_embedded": {"classifications": [{"segment": {"id": "SPORTS", "name": "Sports"}}]}},
  )
  upstream.add(EVENTS_PATH, events_body(make_event("E3")))
  resp = anon_client.get("/api/events", params={"latitude": 1, "longitude": 2, "categories": "Sports, Opera"})
  assert resp.status_code == 200
  assert upstream.calls(EVENTS_PATH)[0].url.params["classificationId"] == "SPORTS"


def test_keyword_mode_without_coordinates(anon_client, upstream):
  upstream.add(EVENTS_PATH, events_body(make_event("E4")))
  resp = anon_client.get("/api/events", params={"keyword": "jazz"})
  assert resp.status_code == 200
  params = upstream.calls(EVENTS_PATH)[0].url.params
  assert params["keyword"] == "jazz"
  assert "latlong" not in params


def test_keyword_endpoint(anon_client, upstream):
  upstream.add(EVENTS_PATH, events_body(make_event("E5")))
  resp = anon_client.get("/api/events/keyword", params={"keyword": "jazz", "countryCode": "DK"})
  assert resp.status_code == 200
  assert upstream.calls(EVENTS_PATH)[0].url.params["countryCode"] == "DK"


def test_keyword_endpoint_requires_keyword(anon_client):
  resp = anon_client.get("/api/events/keyword")
  assert resp.status_code == 400
  assert resp.json() == {"message": "Keyword parameter is required"}


def test_keyword_endpoint_no_results(anon_client, upstream):
  upstream.add(EVENTS_PATH, events_body())
  resp = anon_client.get("/api/events/keyword", params={"keyword": "zzzz"})
  assert resp.status_code == 404
  assert resp.json() == {"message": "No events found for the given keyword."}


def test_event_details(anon_client, upstream):
  upstream.add(event_path("E7"), make_event("E7", with_image=False))
  resp = anon_client.get("/api/events/E7")
  assert resp.status_code == 200
  body = resp.json()
  assert body["imageUrl"] is None
  assert (body["imageWidth"], body["imageHeight"]) == (640, 360)
  assert body["venueAddress"]["country"] == "Denmark"


def test_event_details_not_found(anon_client):
  resp = anon_client.get("/api/events/nope")
  assert resp.status_code == 404
  assert resp.json() == {"message": "Event not found"}


def test_event_details_upstream_failure(anon_client, upstream):
  upstream.add(event_path("E8"), {"fault": "down"}, status_code=502)
  resp = anon_client.get("/api/events/E8")
  assert resp.status_code == 500
  assert resp.json() == {"message": "API call failed with status: 502"}


def test_event_details_html_body_is_json_error(anon_client, upstream):
  upstream.add(event_path("E9"), handler=lambda request: httpx.Response(200, text="<html>gateway</html>"))
  resp = anon_client.get("/api/events/E9")
  assert resp.status_code == 500
  assert resp.json() == {"message": "Failed to fetch event details"}


def test_keyword_search_html_body_is_json_error(anon_client, upstream):
  upstream.add(EVENTS_PATH, handler=lambda request: httpx.Response(200, text="<html>maintenance</html>"))
  resp = anon_client.get("/api/events/keyword", params={"keyword": "jazz"})
  assert resp.status_code == 500
  assert resp.json() == {"message": "Failed to fetch events"}


def test_unexpected_error_returns_json(app, services, monkeypatch):
  async def explode(event_id):
    raise RuntimeError("boom")

  monkeypatch.setattr(services.events, "get_event_by_id", explode)
  with TestClient(app, raise_server_exceptions=False) as client:
    resp = client.get("/api/events/E1")
  assert resp.status_code == 500
  assert resp.json() == {"message": "Internal server error"}
