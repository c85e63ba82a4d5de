"""
Tests for the structlog processors.
"""

import pytest

from seating.core.logging import add_service_context, mask_contact_details


@pytest.mark.parametrize(
    "phone, masked",
    [
        ("0611223344", "********44"),
        ("12", "12"),
        ("7", "7"),
    ],
)
def test_phone_numbers_are_masked(phone, masked):
    event = mask_contact_details(None, "info", {"event": "reservation_created", "phone": phone})
    assert event["phone"] == masked


def test_events_without_phone_are_untouched():
    event = {"event": "seat_toggled", "seat": "T1-S1"}
    assert mask_contact_details(None, "info", dict(event)) == event


def test_storage_backend_is_added():
    event = add_service_context(None, "info", {"event": "x"})
    assert event["storage"] == "memory"
