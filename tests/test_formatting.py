from conftest import make_event

from happenings_service.discovery.formatting import format_event_details, format_event_summary, pick_image


def test_pick_image_prefers_16_9():
  image = pick_image(make_event()["images"])
  assert image == {"url": "https://img.example.com/16x9.jpg", "width": 1024, "height": 576}


def test_pick_image_without_16_9_falls_back_to_defaults():
  image = pick_image(make_event(with_image=False)["images"])
  assert image == {"url": None, "width": 640, "height": 360}
  assert pick_image(None) == {"url": None, "width": 640, "height": 360}


def test_details_of_complete_event():
  raw = make_event(event_id="G5v0Z9Yc3N1r7")
  detail = format_event_details(raw)
  assert detail.id == "G5v0Z9Yc3N1r7"
  assert detail.name == "Test Concert"
  assert detail.venue == "Royal Arena"
  assert detail.venueAddress.city == "Copenhagen"
  assert detail.venueAddress.postalCode == "2300"
  assert detail.priceRange == 25.0
  assert detail.genre == "Rock"
  assert detail.imageWidth == 1024
  assert detail.dateTime == raw["dates"]["start"]["dateTime"]


def test_details_with_missing_optional_parts():
  raw = make_event(with_image=False, with_venue=False, price=None, genre=None)
  detail = format_event_details(raw)
  assert detail.venue == "N/A"
  assert detail.venueAddress.model_dump() == {"address": None, "city": None, "postalCode": None, "country": None}
  assert detail.priceRange == "N/A"
  assert detail.genre is None
  assert detail.imageUrl is None
  assert (detail.imageWidth, detail.imageHeight) == (640, 360)


def test_summary_joins_address_line_and_city():
  summary = format_event_summary(make_event())
  assert summary.address == "Hannemanns Allé 18, Copenhagen"
  assert summary.venue == "Royal Arena"
  assert summary.imageUrl == "https://img.example.com/16x9.jpg"


def test_summary_without_venue():
  summary = format_event_summary(make_event(with_venue=False, price=None))
  assert summary.venue is None
  assert summary.address is None
  assert summary.priceRange == "N/A"
