"""Event seating API: seat inventory and allocation."""
