"""Regenerate kotla/data/cities.csv from Wikidata.

Pulls every "city of Indonesia" (kota) with its coordinates, then adds the
provincial capitals that are regencies rather than cities by label lookup.
Cities outside the playable lat/long domain are skipped with a warning.
"""

import csv
import logging
import pathlib
import time
from typing import Dict, List, Optional

import requests

from kotla.geo_calc import DOMAIN_LAT, DOMAIN_LON

SPARQL_ENDPOINT = "https://query.wikidata.org/sparql"
USER_AGENT = "kotla/1.0 (city list)"
CITY_OF_INDONESIA = "Q3199141"

OUTPUT_DIR = pathlib.Path(__file__).resolve().parent / "kotla" / "data"

# Provincial capitals and well-known towns that are not a "kota" on Wikidata.
EXTRA_CITIES = {"Jakarta", "Mamuju", "Manokwari", "Merauke", "Nabire", "Sofifi", "Tanjung Selor", "Wamena"}

logger = logging.getLogger("build_cities")


def _sparql(query: str) -> List[Dict]:
    headers = {
        "Accept": "application/sparql-results+json",
        "User-Agent": USER_AGENT,
    }
    resp = requests.post(SPARQL_ENDPOINT, data={"query": query}, headers=headers, timeout=60)
    resp.raise_for_status()
    return resp.json().get("results", {}).get("bindings", [])


def _parse_point(wkt: str) -> Optional[Dict[str, float]]:
    """Wikidata returns coordinates as ``Point(lon lat)``."""
    if not wkt.startswith("Point(") or not wkt.endswith(")"):
        return None
    parts = wkt[len("Point("):-1].split()
    if len(parts) != 2:
        return None
    lon, lat = (float(p) for p in parts)
    return {"latitude": round(lat, 4), "longitude": round(lon, 4)}


def _clean_label(label: str) -> str:
    label = label.strip()
    if label.lower().startswith("kota "):
        label = label[5:]
    if label.lower().endswith(" city"):
        label = label[:-5]
    return label.strip()


def query_indonesian_cities() -> List[Dict]:
    query = f"""
    SELECT ?cityLabel ?coord WHERE {{
      ?city wdt:P31 wd:{CITY_OF_INDONESIA}.
      ?city wdt:P625 ?coord.
      FILTER NOT EXISTS {{ ?city wdt:P576 ?dissolved. }}
      SERVICE wikibase:label {{ bd:serviceParam wikibase:language "id,en". }}
    }}
    """
    rows: List[Dict] = []
    for b in _sparql(query):
        name = _clean_label(b.get("cityLabel", {}).get("value", ""))
        point = _parse_point(b.get("coord", {}).get("value", ""))
        if name and point:
            rows.append({"name": name, **point})
    return rows


def query_city_by_label(name: str) -> Optional[Dict]:
    query = f"""
    SELECT ?coord WHERE {{
      ?place rdfs:label "{name}"@id.
      ?place wdt:P17 wd:Q252.
      ?place wdt:P625 ?coord.
    }}
    LIMIT 1
    """
    for b in _sparql(query):
        point = _parse_point(b.get("coord", {}).get("value", ""))
        if point:
            return {"name": name, **point}
    return None


def build_city_rows() -> List[Dict]:
    unique: Dict[str, Dict] = {}
    for row in query_indonesian_cities():
        unique.setdefault(row["name"].lower(), row)

    for name in sorted(EXTRA_CITIES):
        if name.lower() in unique:
            continue
        row = query_city_by_label(name)
        # Be polite with the endpoint
        time.sleep(0.2)
        if row is None:
            logger.warning("No coordinates found for %s", name)
            continue
        unique[name.lower()] = row

    rows = []
    for row in unique.values():
        in_domain = (DOMAIN_LAT[0] <= row["latitude"] <= DOMAIN_LAT[1]
                     and DOMAIN_LON[0] <= row["longitude"] <= DOMAIN_LON[1])
        if not in_domain:
            logger.warning("Skipping %s, outside the playable area", row["name"])
            continue
        rows.append(row)
    return sorted(rows, key=lambda r: r["name"])


def save_outputs(rows: List[Dict]) -> None:
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    csv_path = OUTPUT_DIR / "cities.csv"

    with open(csv_path, "w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=["name", "latitude", "longitude"])
        writer.writeheader()
        for r in rows:
            writer.writerow(r)


def main():
    logging.basicConfig(level=logging.INFO)
    rows = build_city_rows()
    save_outputs(rows)
    print(f"Saved {len(rows)} cities to {OUTPUT_DIR}")


if __name__ == "__main__":
    main()
