import json
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from market_distance.models.domain import Coordinate, MarketAssociation, Vendor
from market_distance.persistence.records import SupabaseRecordStore, parse_vendor_rows
from market_distance.schemas.vendors import VendorRow
from market_distance.services.markets import MarketAggregator, VerifiedAddress


def test_selected_markets_stored_as_json_text():
    row = VendorRow.model_validate(
        {
            "id": 7,
            "store_name": "Honey Co",
            "selected_markets": json.dumps(
                [
                    {"name": "Main St Market", "address": "123 Main St", "place_id": "p-1"},
                    {"name": "Depot Market", "address": "500 Oak Ave"},
                ]
            ),
            "market_days": "Saturday, Sun",
        }
    )

    vendor = row.to_vendor()

    assert vendor.id == "7"
    assert vendor.markets == (
        MarketAssociation(name="Main St Market", address="123 Main St", place_id="p-1"),
        MarketAssociation(name="Depot Market", address="500 Oak Ave"),
    )
    assert vendor.operating_days == frozenset({"Sat", "Sun"})


def test_autocomplete_shaped_entries():
    row = VendorRow.model_validate(
        {
            "id": "1",
            "selected_markets": [
                {
                    "placeId": "p-9",
                    "structured_formatting": {"main_text": "Depot Market", "secondary_text": "500 Oak Ave, Springfield"},
                }
            ],
        }
    )

    [association] = row.associations()

    assert association == MarketAssociation(name="Depot Market", address="500 Oak Ave, Springfield", place_id="p-9")


def test_name_only_entry_takes_legacy_address():
    row = VendorRow.model_validate(
        {
            "id": "1",
            "selected_markets": ["Main St Market"],
            "market_address": "123 Main St",
            "market_place_id": "p-2",
        }
    )

    assert row.associations() == (MarketAssociation(name="Main St Market", address="123 Main St", place_id="p-2"),)


def test_legacy_single_market_fields():
    row = VendorRow.model_validate(
        {"id": "1", "selected_markets": None, "search_term": "Depot Market", "market_address": "500 Oak Ave"}
    )

    assert row.associations() == (MarketAssociation(name="Depot Market", address="500 Oak Ave"),)


def test_vendor_without_any_market():
    row = VendorRow.model_validate({"id": "1", "store_name": None, "market_days": None})

    vendor = row.to_vendor()

    assert vendor.markets == ()
    assert vendor.store_name == ""
    assert vendor.primary_address is None


def test_malformed_rows_are_skipped():
    vendors = parse_vendor_rows(
        [
            {"id": "1", "store_name": "Good", "latitude": 39.8, "longitude": -89.6},
            {"store_name": "No id"},
            {"id": "3", "latitude": "not a number"},
        ]
    )

    assert [vendor.id for vendor in vendors] == ["1"]
    assert vendors[0].coordinate == Coordinate(39.8, -89.6)


@pytest.fixture
def store(fake_supabase):
    fake_supabase.tables["submissions"].rows = [
        {"id": "1", "status": "accepted", "store_name": "Honey Co", "selected_markets": '["Main St Market"]',
         "market_address": "123 Main St", "market_days": ["Sat"]},
        {"id": "2", "status": "pending", "store_name": "Bread Co", "market_address": "500 Oak Ave",
         "search_term": "Depot Market"},
        {"id": "3", "status": "accepted", "store_name": "Jam Co", "market_address": "500 Oak Ave",
         "search_term": "Depot Market"},
    ]
    fake_supabase.tables["markets"].rows = [
        {"id": 10, "name": "Main St Market", "address": "123 Main St, United States", "days": []},
        {"id": 11, "name": "Depot Market", "address": "500 Oak Ave", "days": []},
    ]
    return SupabaseRecordStore(fake_supabase, vendor_table="submissions", market_table="markets")


def test_query_vendors_filters_by_status_and_id(store):
    assert [vendor.id for vendor in store.query_vendors()] == ["1", "3"]
    assert [vendor.id for vendor in store.query_vendors(status=None, ids=["2"])] == ["2"]


def test_market_corrections_are_written_by_key(store, fake_supabase):
    store.update_market_address("main-st-market-123-main-st", "123 Main St, Springfield, IL")
    store.update_market_days("depot-market-500-oak-ave", {"Sat", "Wed"})

    rows = {row["id"]: row for row in fake_supabase.tables["markets"].rows}
    assert rows[10]["address"] == "123 Main St, Springfield, IL"
    assert rows[11]["days"] == ["Wed", "Sat"]


def test_unknown_market_key_is_ignored(store, fake_supabase):
    store.update_market_address("no-such-market", "1 Elm St")

    assert [op for op, _ in fake_supabase.tables["markets"].calls if op == "update"] == []


def test_vendor_coordinates_write_back(store, fake_supabase):
    store.update_vendor_coordinates("3", Coordinate(39.8, -89.6))

    row = next(row for row in fake_supabase.tables["submissions"].rows if row["id"] == "3")
    assert (row["latitude"], row["longitude"]) == (39.8, -89.6)


def test_store_errors_propagate(store, fake_supabase):
    fake_supabase.tables["submissions"].fail = True

    with pytest.raises(ConnectionError):
        store.query_vendors()


def test_store_requires_client():
    with pytest.raises(ValueError):
        SupabaseRecordStore(None)


def test_days_follow_an_address_correction_for_the_same_market(store, fake_supabase):
    key = "main-st-market-123-main-st"

    store.update_market_address(key, "123 Main St, Springfield, IL 62701")
    store.update_market_days(key, {"Sat", "Sun"})

    row = next(row for row in fake_supabase.tables["markets"].rows if row["id"] == 10)
    assert row["address"] == "123 Main St, Springfield, IL 62701"
    assert row["days"] == ["Sun", "Sat"]


def test_aggregator_persists_address_and_days_across_passes(fake_supabase):
    fake_supabase.tables["markets"].rows = [
        {"id": 10, "name": "Main St Market", "address": "123 Main St", "days": ["Sat"]},
    ]
    verified = VerifiedAddress(
        address="123 Main St, Springfield, IL 62701",
        verified_at=datetime(2025, 6, 1, tzinfo=timezone.utc),
    )
    verifier = SimpleNamespace(verify=lambda address: verified)
    vendors = [
        Vendor(id="1", store_name="A", markets=(MarketAssociation("Main St Market", "123 Main St"),),
               operating_days=frozenset({"Sat"})),
        Vendor(id="2", store_name="B", markets=(MarketAssociation("Main St Market", "123 Main St"),),
               operating_days=frozenset({"Sun"})),
    ]

    first = SupabaseRecordStore(fake_supabase, market_table="markets")
    MarketAggregator(verifier=verifier, corrections=first).group(vendors)
    [row] = fake_supabase.tables["markets"].rows
    assert row["address"] == "123 Main St, Springfield, IL 62701"
    assert row["days"] == ["Sun", "Sat"]

    # A later run starts from rows already carrying the corrected address.
    more = vendors + [
        Vendor(id="3", store_name="C", markets=(MarketAssociation("Main St Market", "123 Main St"),),
               operating_days=frozenset({"Wed"})),
    ]
    second = SupabaseRecordStore(fake_supabase, market_table="markets")
    MarketAggregator(verifier=verifier, corrections=second).group(more)
    [row] = fake_supabase.tables["markets"].rows
    assert row["days"] == ["Sun", "Wed", "Sat"]
