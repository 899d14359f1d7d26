import csv

import build_cities


def test_rows_outside_the_playable_area_are_skipped(monkeypatch):
    rows = [
        {"name": "Medan", "latitude": 3.5952, "longitude": 98.6722},
        {"name": "Darwin", "latitude": -12.4634, "longitude": 130.8456},
        {"name": "Bandung", "latitude": -6.9175, "longitude": 107.6191},
    ]
    monkeypatch.setattr(build_cities, "query_indonesian_cities", lambda: rows)
    monkeypatch.setattr(build_cities, "query_city_by_label", lambda name: None)
    monkeypatch.setattr(build_cities, "EXTRA_CITIES", {"Medan"})

    assert [r["name"] for r in build_cities.build_city_rows()] == ["Bandung", "Medan"]


def test_save_outputs_writes_only_the_csv(monkeypatch, tmp_path):
    monkeypatch.setattr(build_cities, "OUTPUT_DIR", tmp_path)
    build_cities.save_outputs([{"name": "Medan", "latitude": 3.5952, "longitude": 98.6722}])

    assert [p.name for p in tmp_path.iterdir()] == ["cities.csv"]
    with open(tmp_path / "cities.csv", encoding="utf-8", newline="") as f:
        assert list(csv.DictReader(f)) == [{"name": "Medan", "latitude": "3.5952", "longitude": "98.6722"}]


def test_labels_and_points_are_cleaned():
    assert build_cities._clean_label("Kota Bandung") == "Bandung"
    assert build_cities._clean_label("Medan City ") == "Medan"
    assert build_cities._parse_point("Point(107.6191 -6.9175)") == {"latitude": -6.9175, "longitude": 107.6191}
    assert build_cities._parse_point("garbage") is None
